from collections import deque

import pytest

from espat.esp8266 import ESP8266


class FakeClock:
    def __init__(self):
        self.now = 0
        self.delays = []

    def millis(self):
        self.now += 1
        return self.now

    def delay(self, ms):
        self.delays.append(ms)
        self.now += ms


class FakeModule:
    """Answers complete command lines and raw payloads with canned replies."""

    def __init__(self, lines=None, payloads=None):
        self.replies = dict(lines or {})
        self.payloads = dict(payloads or {})
        self.lines = []
        self.raw = []
        self._rx = deque()
        self._buffer = b""

    def feed(self, data):
        self._rx.extend(data)

    def available(self):
        return len(self._rx)

    def read(self):
        return self._rx.popleft() if self._rx else -1

    def write(self, data):
        self._buffer += bytes(data)
        if self._buffer in self.payloads:
            self.raw.append(self._buffer)
            self.feed(self.payloads[self._buffer])
            self._buffer = b""
        while b"\r\n" in self._buffer:
            line, self._buffer = self._buffer.split(b"\r\n", 1)
            if line:
                self.lines.append(line)
                self.feed(self.replies.get(line, b""))
        return len(data)


def make(lines=None, payloads=None):
    module = FakeModule(lines, payloads)
    clock = FakeClock()
    return ESP8266(module, clock), module, clock


def test_kick_ok():
    esp, module, _ = make({b"AT": b"\r\nOK\r\n"})
    assert esp.kick() is True
    assert module.lines == [b"AT"]


def test_kick_silent_module():
    esp, _, _ = make()
    assert esp.kick() is False


def test_restart_waits_and_succeeds():
    esp, module, clock = make({b"AT+RST": b"OK\r\n", b"AT": b"OK\r\n"})
    assert esp.restart() is True
    assert module.lines[:2] == [b"AT+RST", b"AT"]
    assert 2000 in clock.delays and 1500 in clock.delays


def test_restart_fails_without_reset_ack():
    esp, module, _ = make()
    assert esp.restart() is False
    assert module.lines == [b"AT+RST"]


def test_get_version_filters_block():
    reply = b"AT+GMR\r\r\nAT version:1.0\r\n\r\nOK\r\n"
    esp, _, clock = make({b"AT+GMR": reply})
    assert esp.get_version() == "AT version:1.0"
    assert 3000 in clock.delays


def test_set_echo_wire_format():
    esp, module, _ = make({b"ATE0": b"OK\r\n"})
    assert esp.set_echo(0) is True
    assert module.lines == [b"ATE0"]


def test_restore_and_deep_sleep():
    esp, module, _ = make({b"AT+RESTORE": b"OK\r\n", b"AT+GSLP=1500": b"OK\r\n"})
    assert esp.restore() is True
    assert esp.deep_sleep(1500) is True
    assert module.lines == [b"AT+RESTORE", b"AT+GSLP=1500"]


def test_set_uart_current():
    esp, module, _ = make({b"AT+UART_CUR=115200,8,1,0,0": b"OK\r\n"})
    assert esp.set_uart(115200, 2) is True
    assert module.lines == [b"AT+UART_CUR=115200,8,1,0,0"]


@pytest.mark.parametrize("pattern", [0, 4])
def test_set_uart_rejects_bad_pattern(pattern):
    esp, module, _ = make()
    with pytest.raises(ValueError):
        esp.set_uart(9600, pattern)
    assert module.lines == []


def test_ip_status_and_local_ip():
    status = b"AT+CIPSTATUS\r\r\nSTATUS:2\r\n\r\nOK\r\n"
    local = b"AT+CIFSR\r\r\n+CIFSR:STAIP,\"10.0.0.2\"\r\n\r\nOK\r\n"
    esp, _, clock = make({b"AT+CIPSTATUS": status, b"AT+CIFSR": local})
    assert esp.get_ip_status() == "STATUS:2"
    assert esp.get_local_ip() == '+CIFSR:STAIP,"10.0.0.2"'
    assert 100 in clock.delays


def test_mux_toggle():
    esp, module, _ = make({b"AT+CIPMUX=1": b"OK\r\n", b"AT+CIPMUX=0": b"Link is builded\r\n"})
    assert esp.enable_mux() is True
    assert esp.disable_mux() is False
    assert module.lines == [b"AT+CIPMUX=1", b"AT+CIPMUX=0"]


def test_create_tcp_single():
    line = b'AT+CIPSTART="TCP","example.com",80'
    esp, module, _ = make({line: b"CONNECT\r\n\r\nOK\r\n"})
    assert esp.create_tcp("example.com", 80) is True
    assert module.lines == [line]


def test_register_udp_multiple_already_connected():
    line = b'AT+CIPSTART=2,"UDP","example.com",53'
    esp, module, _ = make({line: b"ALREADY CONNECT\r\n"})
    assert esp.register_udp("example.com", 53, mux_id=2) is True
    assert module.lines == [line]


def test_create_tcp_error():
    line = b'AT+CIPSTART="TCP","example.com",80'
    esp, _, _ = make({line: b"ERROR\r\n"})
    assert esp.create_tcp("example.com", 80) is False


def test_release_single_and_multiple():
    esp, module, _ = make(
        {b"AT+CIPCLOSE": b"OK\r\n", b"AT+CIPCLOSE=3": b"link is not valid\r\n"}
    )
    assert esp.release_tcp() is True
    assert esp.unregister_udp(3) is True
    assert module.lines == [b"AT+CIPCLOSE", b"AT+CIPCLOSE=3"]


def test_server_timeout_default():
    esp, module, _ = make({b"AT+CIPSTO=180": b"OK\r\n"})
    assert esp.set_tcp_server_timeout() is True
    assert module.lines == [b"AT+CIPSTO=180"]


def test_start_server_default_port_no_change():
    esp, module, _ = make({b"AT+CIPSERVER=1,333": b"no change\r\n"})
    assert esp.start_server() is True
    assert module.lines == [b"AT+CIPSERVER=1,333"]


def test_stop_server_restarts_and_reports_false():
    esp, module, _ = make(
        {b"AT+CIPSERVER=0": b"\r\r\nOK\r\n", b"AT+RST": b"OK\r\n", b"AT": b"OK\r\n"}
    )
    assert esp.stop_server() is False
    assert module.lines[:2] == [b"AT+CIPSERVER=0", b"AT+RST"]


def test_set_cip_mode():
    esp, module, _ = make({b"AT+CIPMODE=1": b"OK\r\n"})
    assert esp.set_cip_mode(1) is True
    with pytest.raises(ValueError):
        esp.set_cip_mode(2)
    assert module.lines == [b"AT+CIPMODE=1"]


def test_save_trans_link_and_ping():
    link_line = b'AT+SAVETRANSLINK=1,"192.168.1.5",8080'
    ping_line = b'AT+PING="192.168.1.5"'
    esp, module, _ = make({link_line: b"OK\r\n", ping_line: b"+12\r\nOK\r\n"})
    assert esp.save_trans_link(1, "192.168.1.5", 8080) is True
    assert esp.ping("192.168.1.5") is True
    assert module.lines == [link_line, ping_line]


def test_send_single():
    esp, module, _ = make(
        {b"AT+CIPSEND=5": b"\r\nOK\r\n> "}, {b"hello": b"\r\nSEND OK\r\n"}
    )
    assert esp.send(b"hello") is True
    assert module.raw == [b"hello"]


def test_send_multiple_text():
    esp, module, _ = make(
        {b"AT+CIPSEND=1,2": b"> "}, {b"hi": b"\r\nSEND OK\r\n"}
    )
    assert esp.send("hi", mux_id=1) is True
    assert module.lines == [b"AT+CIPSEND=1,2"]


def test_send_without_prompt():
    esp, module, _ = make()
    assert esp.send(b"hello") is False
    assert module.raw == []


def test_run_reports_incoming_data():
    esp, module, _ = make()
    seen = []
    esp.set_on_data(lambda mux_id, length: seen.append((mux_id, length)))
    module.feed(b"+IPD,1,4:abcd")
    esp.run()
    assert seen == [(1, 4)]
    assert module.available() == 0


def test_wifi_commands_share_link():
    esp, module, _ = make({b"AT+CWQAP": b"OK\r\n"})
    assert esp.wifi.leave_ap() is True
    assert module.lines == [b"AT+CWQAP"]