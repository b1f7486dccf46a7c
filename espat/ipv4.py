"""IPv4 addresses held as four octets."""

from __future__ import annotations


def _octet(value: int) -> int:
    if not isinstance(value, int) or not 0 <= value <= 255:
        raise ValueError(f"octet out of range: {value!r}")
    return value


class IPAddress:
    """An IPv4 address; its integer form stores the first octet in the low byte."""

    __slots__ = ("_octets",)

    def __init__(self, *args) -> None:
        if not args:
            octets = bytes(4)
        elif len(args) == 4:
            octets = bytes(_octet(a) for a in args)
        elif len(args) == 1:
            (value,) = args
            if isinstance(value, IPAddress):
                octets = bytes(value._octets)
            elif isinstance(value, int):
                if not 0 <= value <= 0xFFFFFFFF:
                    raise ValueError(f"address out of range: {value!r}")
                octets = value.to_bytes(4, "little")
            elif isinstance(value, (bytes, bytearray, memoryview)):
                octets = bytes(value)
                if len(octets) != 4:
                    raise ValueError("an address needs exactly four bytes")
            else:
                raise TypeError(f"cannot build an address from {type(value).__name__}")
        else:
            raise TypeError("expected no arguments, one value or four octets")
        self._octets = bytearray(octets)

    @classmethod
    def from_int(cls, value: int) -> IPAddress:
        return cls(value)

    @classmethod
    def from_string(cls, text: str) -> IPAddress:
        """Parse dotted-quad text; raise ValueError if it is malformed."""
        octets: list[int] = []
        acc = 0
        for char in text:
            if "0" <= char <= "9":
                acc = acc * 10 + (ord(char) - ord("0"))
                if acc > 255:
                    raise ValueError(f"octet out of range in {text!r}")
            elif char == ".":
                if len(octets) == 3:
                    raise ValueError(f"too many dots in {text!r}")
                octets.append(acc)
                acc = 0
            else:
                raise ValueError(f"invalid character {char!r} in {text!r}")
        if len(octets) != 3:
            raise ValueError(f"too few dots in {text!r}")
        octets.append(acc)
        return cls(*octets)

    def __int__(self) -> int:
        return int.from_bytes(self._octets, "little")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IPAddress):
            return self._octets == other._octets
        if isinstance(other, (bytes, bytearray)):
            return bytes(self._octets) == bytes(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(bytes(self._octets))

    def __getitem__(self, index: int) -> int:
        return self._octets[index]

    def __setitem__(self, index: int, value: int) -> None:
        self._octets[index] = _octet(value)

    def __bytes__(self) -> bytes:
        return bytes(self._octets)

    def __str__(self) -> str:
        return ".".join(str(octet) for octet in self._octets)

    def __repr__(self) -> str:
        return f"IPAddress('{self}')"


INADDR_NONE = IPAddress(0, 0, 0, 0)