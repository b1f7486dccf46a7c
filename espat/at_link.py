"""Low-level AT command exchange: sending, reading replies, spotting +IPD frames."""

from __future__ import annotations

import re
from enum import IntEnum
from typing import Callable, NamedTuple

from .transport import Clock, Stream, SystemClock

DataCallback = Callable[[int, int], None]

DEFAULT_TIMEOUT_MS = 1000
_DRAIN_QUIET_MS = 10
_IPD_PREFIX = "+IPD,"
_MAX_MUX_ID = 4
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


class Pattern(IntEnum):
    """Which variant of a configuration command to use."""

    DEF = 1
    CUR = 2
    PLAIN = 3

    @property
    def suffix(self) -> str:
        """The command-name suffix: ``_DEF``, ``_CUR`` or nothing."""
        return {Pattern.DEF: "_DEF", Pattern.CUR: "_CUR"}.get(self, "")


DEFAULT_PATTERN = Pattern.PLAIN


class IpdHeader(NamedTuple):
    """An incoming-data header; ``mux_id`` is -1 in single-connection mode."""

    mux_id: int
    length: int


class Filtered(NamedTuple):
    """The outcome of a filtered reply: whether the target came, and the text kept."""

    found: bool
    text: str


def _to_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def _substring(text: str, left: int, right: int) -> str:
    if left > right:
        left, right = right, left
    if left > len(text):
        return ""
    return text[left:right]


def parse_ipd(data: str) -> IpdHeader | None:
    """Find a complete ``+IPD,[id,]len:`` header in ``data``."""
    start = data.find(_IPD_PREFIX)
    if start == -1:
        return None
    body = start + len(_IPD_PREFIX)
    colon = data.find(":", body)
    if colon == -1:
        return None
    comma = data.find(",", body)
    if comma != -1 and comma < colon:
        mux_id = _to_int(data[body:comma])
        if not 0 <= mux_id <= _MAX_MUX_ID:
            return None
        length = _to_int(data[comma + 1 : colon])
    else:
        mux_id = -1
        length = _to_int(data[body:colon])
    if length <= 0:
        return None
    return IpdHeader(mux_id, length)


class ATLink:
    """Sends AT commands over a stream and collects the module's replies."""

    def __init__(self, stream: Stream, clock: Clock | None = None) -> None:
        self.stream = stream
        self.clock = clock if clock is not None else SystemClock()
        self._on_data: DataCallback | None = None

    def set_on_data(self, callback: DataCallback | None) -> None:
        """Register ``callback(mux_id, length)`` for incoming-data headers."""
        self._on_data = callback

    def check_ipd(self, data: str) -> int:
        """Return the announced length of an +IPD header in ``data``, or 0."""
        header = parse_ipd(data)
        if header is None:
            return 0
        if self._on_data is not None:
            self._on_data(header.mux_id, header.length)
        return header.length

    def _next_char(self) -> str | None:
        byte = self.stream.read()
        if byte <= 0:
            return None
        return chr(byte)

    def drain(self) -> None:
        """Discard pending input until the line stays quiet, noting +IPD headers."""
        data = ""
        start = self.clock.millis()
        while self.clock.millis() - start < _DRAIN_QUIET_MS:
            if self.stream.available():
                char = self._next_char()
                if char is None:
                    continue
                data += char
                if self.check_ipd(data):
                    data = ""
                start = self.clock.millis()

    def write(self, data: bytes | bytearray) -> None:
        self.stream.write(bytes(data))

    def send(self, *args) -> None:
        """Write each argument: bytes as they are, anything else as its text."""
        for arg in args:
            if isinstance(arg, (bytes, bytearray)):
                self.stream.write(bytes(arg))
            else:
                self.stream.write(str(arg).encode("latin-1"))

    def send_line(self, *args) -> None:
        self.send(*args, "\r\n")

    def recv_string(self, *args: str, timeout: int = DEFAULT_TIMEOUT_MS) -> str:
        """Read until any target appears or ``timeout`` ms pass; return what was read."""
        if not args:
            raise TypeError("recv_string needs at least one target")
        data = ""
        start = self.clock.millis()
        while self.clock.millis() - start < timeout:
            while self.stream.available() > 0:
                char = self._next_char()
                if char is None:
                    continue
                data += char
                if any(target in data for target in args):
                    return data
                if self.check_ipd(data):
                    data = ""
        return data

    def recv_find(self, target: str, timeout: int = DEFAULT_TIMEOUT_MS) -> bool:
        return target in self.recv_string(target, timeout=timeout)

    def recv_find_and_filter(
        self, target: str, begin: str, end: str, timeout: int = DEFAULT_TIMEOUT_MS
    ) -> Filtered:
        """Wait for ``target`` and keep the text between ``begin`` and ``end``.

        Without ``begin``, the text before ``end`` is kept. When the target or
        ``end`` never shows up, the whole reply comes back with ``found`` false.
        """
        reply = self.recv_string(target, timeout=timeout)
        if target in reply:
            first = reply.find(begin)
            last = reply.find(end)
            if first != -1 and last != -1:
                return Filtered(True, _substring(reply, first + len(begin), last))
            if last != -1:
                return Filtered(True, _substring(reply, 0, last))
        return Filtered(False, reply)