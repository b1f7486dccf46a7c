"""Wi-Fi configuration commands: operating mode, access points, DHCP, addresses."""

from __future__ import annotations

from enum import IntEnum

from .at_link import DEFAULT_PATTERN, ATLink, Pattern, _to_int

_QUERY_TIMEOUT_MS = 10000
_SHORT_TIMEOUT_MS = 2000
_JOIN_TIMEOUT_MS = 10000
_SOFT_AP_TIMEOUT_MS = 5000
_AP_LIST_TIMEOUT_MS = 15000
_BLOCK_END = "\r\n\r\nOK"
_BLOCK_BEGIN = "\r\r\n"


class WifiMode(IntEnum):
    """Operating modes reported and accepted by ``AT+CWMODE``."""

    STATION = 1
    SOFT_AP = 2
    STATION_SOFT_AP = 3


def _suffix(pattern: int) -> str:
    """Map a pattern to its command suffix; any value past 2 means the plain form."""
    value = int(pattern)
    if value <= 0:
        raise ValueError(f"invalid command pattern: {pattern!r}")
    if value in (Pattern.DEF, Pattern.CUR):
        return Pattern(value).suffix
    return ""


class WifiCommands:
    """Wi-Fi related AT commands sent over an :class:`ATLink`."""

    def __init__(self, link: ATLink) -> None:
        self.link = link

    # Operating mode

    def _query_mode(self, pattern: int) -> int | None:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CWMODE", suffix, "?")
        found, text = self.link.recv_find_and_filter("OK", ":", _BLOCK_END)
        return _to_int(text) if found else None

    def _write_mode(self, mode: int, pattern: int) -> bool:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CWMODE", suffix, "=", int(mode))
        reply = self.link.recv_string("OK", "no change")
        return "OK" in reply or "no change" in reply

    def _ensure_mode(self, mode: WifiMode, query_pattern: int, set_pattern: int) -> bool:
        current = self._query_mode(query_pattern)
        if current is None:
            return False
        if current == mode:
            return True
        return self._write_mode(mode, set_pattern)

    def set_opr_to_station(
        self, query_pattern: int = DEFAULT_PATTERN, set_pattern: int = DEFAULT_PATTERN
    ) -> bool:
        return self._ensure_mode(WifiMode.STATION, query_pattern, set_pattern)

    def set_opr_to_soft_ap(
        self, query_pattern: int = DEFAULT_PATTERN, set_pattern: int = DEFAULT_PATTERN
    ) -> bool:
        return self._ensure_mode(WifiMode.SOFT_AP, query_pattern, set_pattern)

    def set_opr_to_station_soft_ap(
        self, query_pattern: int = DEFAULT_PATTERN, set_pattern: int = DEFAULT_PATTERN
    ) -> bool:
        return self._ensure_mode(WifiMode.STATION_SOFT_AP, query_pattern, set_pattern)

    def get_opr_mode(self, pattern: int = DEFAULT_PATTERN) -> int:
        """Return the operating mode (1, 2 or 3), or 0 when the query fails."""
        current = self._query_mode(pattern)
        return 0 if current is None else current

    def get_wifi_mode_list(self) -> str:
        self.link.drain()
        self.link.send_line("AT+CWMODE=?")
        return self.link.recv_find_and_filter("OK", "+CWMODE:(", ")" + _BLOCK_END).text

    # Station side

    def get_ap_list(self) -> str:
        self.link.drain()
        self.link.send_line("AT+CWLAP")
        return self.link.recv_find_and_filter(
            "OK", _BLOCK_BEGIN, _BLOCK_END, timeout=_AP_LIST_TIMEOUT_MS
        ).text

    def get_now_connected_ap(self, pattern: int = DEFAULT_PATTERN) -> str:
        """Return the module's whole reply about the access point joined now."""
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CWJAP", suffix, "?")
        return self.link.recv_string("OK", "No AP")

    def join_ap(self, ssid: str, pwd: str, pattern: int = DEFAULT_PATTERN) -> bool:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CWJAP", suffix, '="', ssid, '","', pwd, '"')
        reply = self.link.recv_string("OK", "FAIL", timeout=_JOIN_TIMEOUT_MS)
        return "OK" in reply

    def leave_ap(self) -> bool:
        self.link.drain()
        self.link.send_line("AT+CWQAP")
        return self.link.recv_find("OK")

    # Soft access point

    def get_soft_ap_param(self, pattern: int = DEFAULT_PATTERN) -> str:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CWSAP", suffix, "?")
        return self.link.recv_find_and_filter(
            "OK", _BLOCK_BEGIN, _BLOCK_END, timeout=_QUERY_TIMEOUT_MS
        ).text

    def set_soft_ap_param(
        self,
        ssid: str,
        pwd: str,
        channel: int = 7,
        ecn: int = 4,
        pattern: int = DEFAULT_PATTERN,
    ) -> bool:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line(
            "AT+CWSAP", suffix, '="', ssid, '","', pwd, '",', int(channel), ",", int(ecn)
        )
        reply = self.link.recv_string("OK", "ERROR", timeout=_SOFT_AP_TIMEOUT_MS)
        return "OK" in reply

    def get_joined_device_ip(self) -> str:
        self.link.drain()
        self.link.send_line("AT+CWLIF")
        return self.link.recv_find_and_filter("OK", _BLOCK_BEGIN, _BLOCK_END).text

    # DHCP and auto-connect

    def get_dhcp(self, pattern: int = DEFAULT_PATTERN) -> str:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CWDHCP", suffix, "?")
        return self.link.recv_find_and_filter(
            "OK", _BLOCK_BEGIN, "\r\nOK", timeout=_QUERY_TIMEOUT_MS
        ).text

    def set_dhcp(self, mode: int, enable: int, pattern: int = DEFAULT_PATTERN) -> bool:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CWDHCP", suffix, "=", int(mode), ",", int(enable))
        reply = self.link.recv_string("OK", "ERROR", timeout=_SHORT_TIMEOUT_MS)
        return "OK" in reply

    def set_auto_connect(self, enable: int) -> bool:
        value = int(enable)
        if value not in (0, 1):
            raise ValueError(f"auto-connect flag must be 0 or 1, got {enable!r}")
        self.link.drain()
        self.link.send_line("AT+CWAUTOCONN=", value)
        return self.link.recv_find("OK")

    # Addresses

    def get_station_mac(self, pattern: int = DEFAULT_PATTERN) -> str:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CIPSTAMAC", suffix, "?")
        return self.link.recv_find_and_filter(
            "OK", _BLOCK_BEGIN, _BLOCK_END, timeout=_SHORT_TIMEOUT_MS
        ).text

    def set_station_mac(self, mac: str, pattern: int = DEFAULT_PATTERN) -> bool:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CIPSTAMAC", suffix, '="', mac, '"')
        return self.link.recv_find("OK")

    def get_station_ip(self, pattern: int = DEFAULT_PATTERN) -> str:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CIPSTA", suffix, "?")
        return self.link.recv_find_and_filter(
            "OK", _BLOCK_BEGIN, _BLOCK_END, timeout=_SHORT_TIMEOUT_MS
        ).text

    def set_station_ip(
        self, ip: str, gateway: str, netmask: str, pattern: int = DEFAULT_PATTERN
    ) -> bool:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line(
            "AT+CIPSTA", suffix, '="', str(ip), '","', str(gateway), '","', str(netmask), '"'
        )
        return self.link.recv_find("OK")

    def get_ap_ip(self, pattern: int = DEFAULT_PATTERN) -> str:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CIPAP", suffix, "?")
        return self.link.recv_find_and_filter(
            "OK", _BLOCK_BEGIN, _BLOCK_END, timeout=_SHORT_TIMEOUT_MS
        ).text

    def set_ap_ip(self, ip: str, pattern: int = DEFAULT_PATTERN) -> bool:
        suffix = _suffix(pattern)
        self.link.drain()
        self.link.send_line("AT+CIPAP", suffix, '="', str(ip), '"')
        return self.link.recv_find("OK")

    # Smart config

    def start_smart_config(self, kind: int) -> bool:
        """Start smart config: 1 for ESP-Touch, 2 for AirKiss."""
        self.link.drain()
        self.link.send_line("AT+CWSTARTSMART=", int(kind))
        return self.link.recv_find("OK")

    def stop_smart_config(self) -> bool:
        self.link.drain()
        self.link.send_line("AT+CWSTOPSMART")
        return self.link.recv_find("OK")