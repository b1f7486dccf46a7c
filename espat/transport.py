"""Byte streams and a millisecond clock for talking to AT-command modules."""

from __future__ import annotations

import time
from collections import deque
from typing import Protocol

import serial


class Stream(Protocol):
    """A byte stream: non-blocking reads and buffered writes."""

    def available(self) -> int: ...

    def read(self) -> int: ...

    def write(self, data: bytes | bytearray | str | int) -> int: ...


class Clock(Protocol):
    """A source of elapsed milliseconds that can also pause."""

    def millis(self) -> int: ...

    def delay(self, ms: int) -> None: ...


class PortClosedError(OSError):
    """Raised when a serial port is used before it has been opened."""


def _to_bytes(data: bytes | bytearray | memoryview | str | int) -> bytes:
    if isinstance(data, int):
        return bytes([data & 0xFF])
    if isinstance(data, str):
        return data.encode("latin-1")
    return bytes(data)


class SystemClock:
    """Monotonic wall clock in milliseconds."""

    def millis(self) -> int:
        return time.monotonic_ns() // 1_000_000

    def delay(self, ms: int) -> None:
        if ms > 0:
            time.sleep(ms / 1000)


class SerialPort:
    """A serial device opened at 8 data bits, no parity, one stop bit, no flow control."""

    def __init__(self, device: str) -> None:
        self.device = device
        self.timeout_ms = 1000
        self._port: serial.SerialBase | None = None

    def begin(self, baud: int) -> bool:
        """Open the port at ``baud``, or change the speed if it is already open."""
        if self._port is not None:
            self._port.baudrate = baud
            return True
        try:
            self._port = serial.serial_for_url(
                self.device,
                baudrate=baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                timeout=0,
            )
        except (serial.SerialException, OSError, ValueError):
            self._port = None
            return False
        return True

    def end(self) -> None:
        if self._port is not None:
            self._port.close()
            self._port = None

    def _require_port(self) -> serial.SerialBase:
        if self._port is None:
            raise PortClosedError(f"serial port {self.device!r} is not open")
        return self._port

    def available(self) -> int:
        return self._require_port().in_waiting

    def read(self) -> int:
        """Return the next byte without waiting, or -1 if none is ready."""
        chunk = self._require_port().read(1)
        return chunk[0] if chunk else -1

    def read_bytes(self, length: int) -> bytes:
        """Read up to ``length`` bytes, waiting at most ``timeout_ms``."""
        port = self._require_port()
        port.timeout = self.timeout_ms / 1000
        try:
            return port.read(length)
        finally:
            port.timeout = 0

    def write(self, data: bytes | bytearray | str | int) -> int:
        payload = _to_bytes(data)
        written = self._require_port().write(payload)
        return len(payload) if written is None else written

    def __bool__(self) -> bool:
        return self._port is not None

    def __enter__(self) -> SerialPort:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.end()


class BufferStream:
    """An in-memory stream: bytes fed in are read back, writes are collected."""

    def __init__(self) -> None:
        self._rx: deque[int] = deque()
        self._tx = bytearray()

    def feed(self, data: bytes | bytearray | str | int) -> None:
        self._rx.extend(_to_bytes(data))

    def available(self) -> int:
        return len(self._rx)

    def read(self) -> int:
        return self._rx.popleft() if self._rx else -1

    def write(self, data: bytes | bytearray | str | int) -> int:
        payload = _to_bytes(data)
        self._tx += payload
        return len(payload)

    def take_written(self) -> bytes:
        """Return everything written so far and forget it."""
        written = bytes(self._tx)
        self._tx.clear()
        return written