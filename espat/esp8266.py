"""High-level driver for an ESP8266 module speaking the AT command set."""

from __future__ import annotations

from typing import Any, Callable, Optional

from .at_link import ATLink
from .wifi import WifiCommands

DataCallback = Callable[[int, int], None]

_BLOCK_BEGIN = "\r\r\n"
_BLOCK_FINISH = "\r\n\r\nOK"
_CONNECT_TIMEOUT_MS = 10000
_CLOSE_TIMEOUT_MS = 5000
_PROMPT_TIMEOUT_MS = 5000
_SEND_TIMEOUT_MS = 10000
_SHORT_TIMEOUT_MS = 2000
_UART_TIMEOUT_MS = 5000
_VERSION_TIMEOUT_MS = 10000
_UART_COMMANDS = {1: "AT+UART=", 2: "AT+UART_CUR=", 3: "AT+UART_DEF="}


def _payload(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("latin-1")
    return bytes(data)


class ESP8266:
    """Drives an ESP8266 over a byte stream; Wi-Fi settings live on ``wifi``."""

    def __init__(self, stream: Any, clock: Optional[Any] = None) -> None:
        self.link = ATLink(stream, clock)
        self.clock = self.link.clock
        self.wifi = WifiCommands(self.link)

    def set_on_data(self, callback: DataCallback | None) -> None:
        """Register ``callback(mux_id, length)`` for incoming-data headers."""
        self.link.set_on_data(callback)

    def run(self) -> None:
        """Consume pending input, reporting any incoming-data headers."""
        self.link.drain()

    # Basic commands

    def _simple(self, *parts, timeout: int | None = None) -> bool:
        self.link.drain()
        self.link.send_line(*parts)
        if timeout is None:
            return self.link.recv_find("OK")
        return self.link.recv_find("OK", timeout)

    def kick(self) -> bool:
        """Return whether the module answers ``AT`` with ``OK``."""
        return self._simple("AT")

    def restart(self) -> bool:
        """Reset the module and wait up to three seconds for it to come back."""
        if not self._simple("AT+RST"):
            return False
        self.clock.delay(2000)
        start = self.clock.millis()
        while self.clock.millis() - start < 3000:
            if self.kick():
                self.clock.delay(1500)
                return True
            self.clock.delay(100)
        return False

    def get_version(self) -> str:
        self.link.drain()
        self.clock.delay(3000)
        self.link.send_line("AT+GMR")
        return self.link.recv_find_and_filter(
            "OK", _BLOCK_BEGIN, _BLOCK_FINISH, timeout=_VERSION_TIMEOUT_MS
        ).text

    def set_echo(self, mode: int) -> bool:
        return self._simple("ATE", int(mode))

    def restore(self) -> bool:
        """Restore factory settings; the module restarts afterwards."""
        return self._simple("AT+RESTORE")

    def set_uart(self, baudrate: int, pattern: int) -> bool:
        """Set the baud rate with 8 data bits, 1 stop bit, no parity or flow control.

        ``pattern`` 1 sends ``AT+UART=``, 2 ``AT+UART_CUR=``, 3 ``AT+UART_DEF=``.
        """
        self.link.drain()
        command = _UART_COMMANDS.get(int(pattern))
        if command is None:
            raise ValueError(f"uart pattern must be 1, 2 or 3, got {pattern!r}")
        self.link.send_line(command, int(baudrate), ",8,1,0,0")
        return self.link.recv_find("OK", _UART_TIMEOUT_MS)

    def deep_sleep(self, time_ms: int) -> bool:
        return self._simple("AT+GSLP=", int(time_ms))

    # Network status

    def get_ip_status(self) -> str:
        self.clock.delay(100)
        self.link.drain()
        self.link.send_line("AT+CIPSTATUS")
        return self.link.recv_find_and_filter("OK", _BLOCK_BEGIN, _BLOCK_FINISH).text

    def get_local_ip(self) -> str:
        self.link.drain()
        self.link.send_line("AT+CIFSR")
        return self.link.recv_find_and_filter("OK", _BLOCK_BEGIN, _BLOCK_FINISH).text

    def _set_mux(self, mode: int) -> bool:
        self.link.drain()
        self.link.send_line("AT+CIPMUX=", mode)
        return "OK" in self.link.recv_string("OK", "Link is builded")

    def enable_mux(self) -> bool:
        return self._set_mux(1)

    def disable_mux(self) -> bool:
        return self._set_mux(0)

    # Connections

    def _start(self, kind: str, addr: str, port: int, mux_id: int | None) -> bool:
        self.link.drain()
        if mux_id is None:
            self.link.send_line('AT+CIPSTART="', kind, '","', addr, '",', int(port))
        else:
            self.link.send_line(
                "AT+CIPSTART=", int(mux_id), ',"', kind, '","', addr, '",', int(port)
            )
        reply = self.link.recv_string(
            "OK", "ERROR", "ALREADY CONNECT", timeout=_CONNECT_TIMEOUT_MS
        )
        return "OK" in reply or "ALREADY CONNECT" in reply

    def _close(self, mux_id: int | None) -> bool:
        self.link.drain()
        if mux_id is None:
            self.link.send_line("AT+CIPCLOSE")
            return self.link.recv_find("OK", _CLOSE_TIMEOUT_MS)
        self.link.send_line("AT+CIPCLOSE=", int(mux_id))
        reply = self.link.recv_string("OK", "link is not", timeout=_CLOSE_TIMEOUT_MS)
        return "OK" in reply or "link is not" in reply

    def create_tcp(self, addr: str, port: int, mux_id: int | None = None) -> bool:
        """Open a TCP connection; pass ``mux_id`` (0-4) in multiple-connection mode."""
        return self._start("TCP", addr, port, mux_id)

    def release_tcp(self, mux_id: int | None = None) -> bool:
        return self._close(mux_id)

    def register_udp(self, addr: str, port: int, mux_id: int | None = None) -> bool:
        return self._start("UDP", addr, port, mux_id)

    def unregister_udp(self, mux_id: int | None = None) -> bool:
        return self._close(mux_id)

    # Server

    def set_tcp_server_timeout(self, timeout: int = 180) -> bool:
        """Set the server idle timeout in seconds (0 to 28800)."""
        return self._simple("AT+CIPSTO=", int(timeout))

    def start_tcp_server(self, port: int = 333) -> bool:
        self.link.drain()
        self.link.send_line("AT+CIPSERVER=1,", int(port))
        reply = self.link.recv_string("OK", "no change")
        return "OK" in reply or "no change" in reply

    def stop_tcp_server(self) -> bool:
        """Stop the server and restart the module; always reports False."""
        self.link.drain()
        self.link.send_line("AT+CIPSERVER=0")
        self.link.recv_find(_BLOCK_BEGIN)
        self.restart()
        return False

    def set_cip_mode(self, mode: int) -> bool:
        """Select normal (0) or pass-through (1) transfer mode."""
        value = int(mode)
        if value not in (0, 1):
            raise ValueError(f"transfer mode must be 0 or 1, got {mode!r}")
        self.link.drain()
        self.link.send_line("AT+CIPMODE=", value)
        reply = self.link.recv_string("OK", "Link is builded", timeout=_SHORT_TIMEOUT_MS)
        return "OK" in reply

    def start_server(self, port: int = 333) -> bool:
        return self.start_tcp_server(port)

    def stop_server(self) -> bool:
        return self.stop_tcp_server()

    def save_trans_link(self, mode: int, ip: str, port: int) -> bool:
        """Store a pass-through link that the module opens at power-up."""
        self.link.drain()
        self.link.send_line("AT+SAVETRANSLINK=", int(mode), ',"', str(ip), '",', int(port))
        reply = self.link.recv_string("OK", "ERROR", timeout=_SHORT_TIMEOUT_MS)
        return "OK" in reply

    def ping(self, ip: str) -> bool:
        return self._simple('AT+PING="', str(ip), '"', timeout=_SHORT_TIMEOUT_MS)

    # Data

    def send(self, data: bytes | bytearray | memoryview | str, mux_id: int | None = None) -> bool:
        """Send ``data`` over the open connection, or connection ``mux_id``."""
        payload = _payload(data)
        self.link.drain()
        if mux_id is None:
            self.link.send_line("AT+CIPSEND=", len(payload))
        else:
            self.link.send_line("AT+CIPSEND=", int(mux_id), ",", len(payload))
        if not self.link.recv_find(">", _PROMPT_TIMEOUT_MS):
            return False
        self.link.drain()
        self.link.write(payload)
        return self.link.recv_find("SEND OK", _SEND_TIMEOUT_MS)