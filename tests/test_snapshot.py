import threading
import time
import unittest

import requests

from soccerbet.errors import Aborted, IncompleteSnapshot, TransportError
from soccerbet.snapshot import fetch_snapshot
from tests.fakes import FakeResponse, FakeSession

HEADERS = 'data: {"liveHeaders": [{"id": 1, "h": "Partizan", "a": "Zvezda", "s": "S", "ls": "RUNNING"}, {"id": 2, "h": "Nadal", "s": "T"}]}\n\n'
BETS = 'data: {"liveBets": [{"id": 100, "mId": 1, "bc": 1, "om": {"1": {"ov": 1.85, "bpc": 11}}}]}\n\n'
SPORTS = 'data: {"liveSports": [{"sport": "S", "sportSortValue": "1", "matchsCount": 4}]}\n\n'


def _session(*chunks, **kw):
    return FakeSession({"/live/events/sr": FakeResponse(chunks, **kw)})


class FetchSnapshotTests(unittest.TestCase):
    def test_complete_snapshot(self) -> None:
        body = SPORTS + HEADERS + BETS + "data: END 1700000000000\n\n"
        # split in awkward places to exercise frame reassembly
        chunks = [body[:17], body[17:150], body[150:]]
        session = _session(*chunks)
        snap = fetch_snapshot("football", session=session)
        self.assertEqual(snap.watermark, 1700000000000)
        self.assertEqual(sorted(h.id for h in snap.headers), [1, 2])
        self.assertEqual(len(snap.odds), 1)
        self.assertEqual(snap.odds[0].outcomes["1"].value, 1.85)
        self.assertEqual(snap.sports[0].match_count, 4)
        self.assertEqual(snap.frames_skipped, 0)
        self.assertTrue(session.calls[0]["stream"])

    def test_frames_after_sentinel_are_not_read(self) -> None:
        session = _session(HEADERS + "data: END 5\n\n", BETS)
        snap = fetch_snapshot("football", session=session)
        self.assertEqual(snap.odds, [])

    def test_missing_sentinel_is_incomplete(self) -> None:
        with self.assertRaises(IncompleteSnapshot):
            fetch_snapshot("football", session=_session(HEADERS, BETS))

    def test_sentinel_without_trailing_delimiter(self) -> None:
        snap = fetch_snapshot("football", session=_session(HEADERS, "data: END 42"))
        self.assertEqual(snap.watermark, 42)

    def test_garbage_frames_are_skipped(self) -> None:
        snap = fetch_snapshot("football", session=_session(HEADERS, "data: {oops\n\n", "data: END 9\n\n"))
        self.assertEqual(snap.frames_skipped, 1)
        self.assertEqual(len(snap.headers), 2)

    def test_malformed_records_do_not_reach_snapshot(self) -> None:
        body = 'data: {"liveHeaders": [{"h": "no id"}, {"id": 3, "ba": "yes"}, {"id": 4}]}\n\ndata: END 1\n\n'
        snap = fetch_snapshot("football", session=_session(body))
        self.assertEqual([h.id for h in snap.headers], [4])

    def test_unparseable_numeric_field_skips_record(self) -> None:
        body = 'data: {"liveHeaders": [{"id": 2, "lid": "--7"}, {"id": 3, "lid": "12"}]}\n\ndata: END 5\n\n'
        snap = fetch_snapshot("football", session=_session(body))
        self.assertEqual(snap.watermark, 5)
        self.assertEqual([h.id for h in snap.headers], [3])

    def test_http_error_status(self) -> None:
        with self.assertRaises(TransportError):
            fetch_snapshot("football", session=_session(status_code=503))

    def test_read_failure_is_transport_error(self) -> None:
        session = _session(HEADERS, raise_on_iter=requests.ConnectionError("reset"))
        with self.assertRaises(TransportError):
            fetch_snapshot("football", session=session)

    def test_cancelled_before_connect(self) -> None:
        cancel = threading.Event()
        cancel.set()
        session = _session(HEADERS)
        with self.assertRaises(Aborted):
            fetch_snapshot("football", session=session, cancel=cancel)
        self.assertEqual(session.calls, [])

    def test_cancelled_between_chunks(self) -> None:
        cancel = threading.Event()
        resp = FakeResponse()

        def cancelling_iter(chunk_size=None, decode_unicode=False):
            yield HEADERS
            cancel.set()
            yield BETS
            yield "data: END 1\n\n"

        resp.iter_content = cancelling_iter
        with self.assertRaises(Aborted):
            fetch_snapshot("football", session=FakeSession({"/live/events/sr": resp}), cancel=cancel)
        self.assertTrue(resp.closed)

    def test_deadline_while_chunks_keep_coming(self) -> None:
        resp = FakeResponse()

        # never sends the sentinel, one frame at a time
        def slow_iter(chunk_size=None, decode_unicode=False):
            while True:
                yield HEADERS
                time.sleep(0.02)

        resp.iter_content = slow_iter
        with self.assertRaises(TransportError) as ctx:
            fetch_snapshot("football", session=FakeSession({"/live/events/sr": resp}), timeout=0.05)
        self.assertIn("not complete", str(ctx.exception))
        self.assertTrue(resp.closed)

    def test_custom_delimiter(self) -> None:
        body = HEADERS.replace("\n\n", "\n") + "data: END 3\n"
        snap = fetch_snapshot("football", session=_session(body), delimiter="\n")
        self.assertEqual(snap.watermark, 3)


if __name__ == "__main__":
    unittest.main()
