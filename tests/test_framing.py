import unittest

from soccerbet.errors import ParseError
from soccerbet.framing import FrameBuffer, decode_frame, iter_frames, parse_delimiter


class FrameBufferTests(unittest.TestCase):
    def test_blank_line_frames_split_across_chunks(self) -> None:
        buf = FrameBuffer("\n\n")
        self.assertEqual(buf.feed('data: {"a"'), [])
        self.assertEqual(buf.feed(': 1}\n'), [])
        self.assertEqual(buf.feed('\ndata: {"b": 2}\n\ndata: E'), ['data: {"a": 1}', 'data: {"b": 2}'])
        self.assertEqual(buf.flush(), "data: E")

    def test_newline_frames(self) -> None:
        frames = list(iter_frames(['{"a":1}\n{"b"', ':2}\n\n', "END 5"], "\n"))
        self.assertEqual(frames, ['{"a":1}', '{"b":2}', "END 5"])

    def test_crlf_is_normalized(self) -> None:
        buf = FrameBuffer("\n\n")
        self.assertEqual(buf.feed("data: 1\r\n\r\ndata: 2\r\n\r\n"), ["data: 1", "data: 2"])

    def test_empty_flush(self) -> None:
        buf = FrameBuffer("\n")
        buf.feed("x\n")
        self.assertIsNone(buf.flush())

    def test_parse_delimiter_unescapes(self) -> None:
        self.assertEqual(parse_delimiter("\\n\\n"), "\n\n")
        self.assertEqual(parse_delimiter("\\r\\n"), "\r\n")
        self.assertEqual(parse_delimiter(""), "\n")

    def test_empty_delimiter_rejected(self) -> None:
        with self.assertRaises(ValueError):
            FrameBuffer("")


class DecodeFrameTests(unittest.TestCase):
    def test_sentinel(self) -> None:
        frame = decode_frame("data: END 1700000000000")
        self.assertTrue(frame.is_sentinel)
        self.assertEqual(frame.watermark, 1700000000000)
        self.assertIsNone(frame.payload)

    def test_bare_sentinel_line(self) -> None:
        self.assertEqual(decode_frame("END 12").watermark, 12)

    def test_multiline_data_joined(self) -> None:
        frame = decode_frame('event: message\nid: 4\ndata: {"liveBets":\ndata: []}')
        self.assertEqual(frame.payload, {"liveBets": []})
        self.assertFalse(frame.is_sentinel)

    def test_comment_only_frame_is_ignored(self) -> None:
        self.assertIsNone(decode_frame(": keepalive"))
        self.assertIsNone(decode_frame("retry: 1000"))

    def test_garbage_raises(self) -> None:
        with self.assertRaises(ParseError):
            decode_frame("data: not json")
        with self.assertRaises(ParseError):
            decode_frame("data: [1, 2]")
        with self.assertRaises(ParseError):
            decode_frame("data: END soon")


if __name__ == "__main__":
    unittest.main()
