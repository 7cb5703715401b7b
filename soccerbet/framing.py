from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

from .errors import ParseError

SENTINEL_PREFIX = "END "
_IGNORED_FIELDS = ("event:", "id:", "retry:")


def parse_delimiter(value: str) -> str:
    """Turn an env-style delimiter ("\\n\\n") into the real characters."""
    s = (value or "").replace("\\r", "\r").replace("\\n", "\n")
    return s or "\n"


class FrameBuffer:
    """Accumulates decoded text chunks and yields complete frames.

    The delimiter differs per feed (blank line on the bulk feed, single
    newline on the live feed), so it is a constructor argument.
    """

    def __init__(self, delimiter: str = "\n\n"):
        if not delimiter:
            raise ValueError("delimiter must be non-empty")
        self.delimiter = delimiter
        self._buf = ""

    def feed(self, chunk: str) -> list[str]:
        if not chunk:
            return []
        self._buf += chunk.replace("\r\n", "\n")
        parts = self._buf.split(self.delimiter)
        self._buf = parts.pop()
        return [p for p in parts if p.strip()]

    def flush(self) -> Optional[str]:
        rest, self._buf = self._buf, ""
        return rest if rest.strip() else None


def iter_frames(chunks: Iterable[str], delimiter: str) -> Iterator[str]:
    buf = FrameBuffer(delimiter)
    for chunk in chunks:
        yield from buf.feed(chunk)
    tail = buf.flush()
    if tail is not None:
        yield tail


@dataclass(frozen=True)
class Frame:
    payload: Optional[dict] = None
    watermark: Optional[int] = None

    @property
    def is_sentinel(self) -> bool:
        return self.watermark is not None


def frame_text(frame: str) -> str:
    """Collapse an SSE-style frame into its payload text.

    `data:` lines contribute their value; lines with no field prefix count as
    payload; event/id/retry fields and `:` comments are dropped.
    """
    out: list[str] = []
    for line in frame.split("\n"):
        if not line.strip():
            continue
        if line.startswith(":"):
            continue
        if line.startswith("data:"):
            out.append(line[5:].lstrip(" "))
            continue
        if line.startswith(_IGNORED_FIELDS):
            continue
        out.append(line)
    return "\n".join(out).strip()


def decode_frame(frame: str) -> Optional[Frame]:
    """Decode one frame. Returns None for frames with nothing to apply
    (comments, bare event/id lines); raises ParseError for garbage."""
    text = frame_text(frame)
    if not text:
        return None
    if text.startswith(SENTINEL_PREFIX) or text == SENTINEL_PREFIX.strip():
        raw = text[len(SENTINEL_PREFIX):].strip()
        try:
            return Frame(watermark=int(raw))
        except ValueError as e:
            raise ParseError(f"bad END sentinel: {text[:100]!r}") from e
    try:
        data: Any = json.loads(text)
    except ValueError as e:
        raise ParseError(f"not JSON: {text[:100]!r}") from e
    if not isinstance(data, dict):
        raise ParseError(f"payload is {type(data).__name__}, expected an object")
    return Frame(payload=data)
