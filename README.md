# espat

`espat` talks to an ESP8266 Wi-Fi module through its serial AT command set.
It sends the commands, waits for the module's answers, and gives you plain
Python values back. Commands that either work or fail return `True` or `False`. Queries return the text of the module's reply.

Incoming network data announced by the module (`+IPD,...`) is recognised while
replies are being read, and can be reported to a callback of your own.

## Installation

```
pip install espat
```

## Modules

- `espat.transport`: contains `SerialPort` (a pyserial-backed port), `BufferStream` (an in-memory stand-in), and `SystemClock` (milliseconds and delays).
- `espat.ipv4`: contains `IPAddress`, a four-octet IPv4 address.
- `espat.at_link`: contains `ATLink`, which sends commands and reads replies. It also has the `Pattern` enum and `parse_ipd`.
- `espat.wifi`: contains `WifiCommands`, for operating mode, access points, DHCP, MAC and IP settings, and smart config.
- `espat.esp8266`: contains `ESP8266`, the high-level driver. It covers basic commands, connections, the server and sending data.

## Getting started

Open the serial port the module is wired to and build an `ESP8266` on top of
it. When no clock is given, `SystemClock` is used.

```python
from espat.transport import SerialPort, SystemClock
from espat.esp8266 import ESP8266

with SerialPort("/dev/ttyUSB0") as port:
    if port.begin(115200):
        esp = ESP8266(port, SystemClock())

        if esp.kick():
            print(esp.get_version())
            print(esp.get_local_ip())
```

`SerialPort.begin` returns `False` if the device cannot be opened. If it is called again on an open port, it only changes the baud rate. The device name is passed to pyserial's `serial_for_url`, so pyserial URLs such as `loop://` work too.
Reading or writing before the port is open raises `PortClosedError`.

### Opening a TCP connection

```python
esp.enable_mux()
if esp.create_tcp("192.0.2.10", 8080, mux_id=0):
    esp.send(b"hello\r\n", mux_id=0)
    esp.release_tcp(mux_id=0)
```

If you leave out `mux_id`, the single-connection forms of the commands are used. `register_udp` and `unregister_udp` work the same way for UDP.
`start_tcp_server(port=333)` and `set_tcp_server_timeout(seconds)` control the module's server. `stop_tcp_server()` also restarts the module, and it always returns `False`.

### Receiving data

Register a callback and call `run()` regularly. `run()` empties the module's output and reports every `+IPD` notice it finds as `callback(mux_id, length)`. `mux_id` is `-1` in single-connection mode.

```python
def on_data(mux_id, length):
    print(f"{length} bytes waiting on link {mux_id}")

esp.set_on_data(on_data)
esp.run()
```

`espat.at_link.parse_ipd` parses a notice on its own. It returns an `IpdHeader(mux_id, length)`, or `None` if the text holds no complete, valid header.

### Wi-Fi settings

Station and soft-AP commands live in `WifiCommands`. An `ESP8266` already has one as `esp.wifi`. You can also build one over an `ATLink` of your own:

```python
from espat.at_link import ATLink
from espat.wifi import WifiCommands

link = ATLink(port, SystemClock())
wifi = WifiCommands(link)

wifi.set_opr_to_station()
pwd = "password"
wifi.join_ap("example-network", pwd=pwd)
print(wifi.get_station_ip())
```

Many commands come in three forms on the module:

- the one saved to flash (`Pattern.DEF`),
- the one for the current session only (`Pattern.CUR`),
- the plain one (`Pattern.PLAIN`, the default).

Pass a `Pattern` from `espat.at_link` to choose between them. A pattern of 0 or below raises `ValueError`.

Some arguments are checked before anything is sent, and a value outside the accepted ones raises `ValueError`:

- `set_auto_connect` and `ESP8266.set_cip_mode` take only 0 or 1.
- `ESP8266.set_uart` takes only pattern 1, 2 or 3.

### IPv4 addresses

`espat.ipv4.IPAddress` holds a four-octet address:

```python
from espat.ipv4 import IPAddress

addr = IPAddress.from_string("192.168.4.1")
print(addr[3], str(addr), bytes(addr), int(addr))
```

`from_string` raises `ValueError` on malformed text. `int(addr)` stores the first octet in the lowest byte, and `IPAddress.from_int` reverses it.

## Testing without hardware

`BufferStream` in `espat.transport` stands in for a serial port. Feed it the bytes the module would answer with, and read back what was written to it with `take_written()`:

```python
from espat.transport import BufferStream

stream = BufferStream()
stream.feed(b"AT\r\r\n\r\nOK\r\n")
```

To exercise the command set in unit tests, pair it with a clock object of your own. The clock needs `millis()` and `delay(ms)`, and should advance time when asked.

## What it does not do

- There is no command-line tool; the package is a library only.
- Payload bytes that follow a `+IPD` header are not collected or buffered. The callback is told the link and the length, and the bytes are then consumed along with the rest of the module's output.
- There is no socket-like client object and no TLS support.