"""
IPv4 codec helpers
Conversions between text, bytes and 32-bit numbers on top of ipaddress
"""

import ipaddress
from typing import Tuple

from errors import AddressError, InvalidRangeError

MAX_IPV4 = 0xFFFFFFFF

PRIVATE_NETWORKS = [
    ipaddress.IPv4Network("127.0.0.0/8"),
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
]


def parse_address(text: str) -> int:
    """Dotted-quad text -> 32-bit number"""
    try:
        return int(ipaddress.IPv4Address(text.strip()))
    except (ipaddress.AddressValueError, AttributeError) as e:
        raise AddressError(text, str(e) or "not an IPv4 address") from e


def format_address(num: int) -> str:
    """32-bit number -> dotted-quad text"""
    return str(ipaddress.IPv4Address(as_ipv4_int(num)))


def parse_cidr(text: str) -> Tuple[int, int]:
    """CIDR text -> (network number, prefix length), host bits allowed"""
    try:
        network = ipaddress.IPv4Network(text.strip(), strict=False)
    except (ValueError, AttributeError) as e:
        raise InvalidRangeError(f"invalid CIDR {text!r}: {e}") from e
    return int(network.network_address), network.prefixlen


def range_from_cidr(text: str) -> Tuple[int, int]:
    """Get (begin, end) integer range for a CIDR"""
    network, prefixlen = parse_cidr(text)
    return network, network + (1 << (32 - prefixlen)) - 1


def as_ipv4_int(value) -> int:
    """
    Coerce any supported address form to its 32-bit number.
    Accepts int, dotted str, 4-byte bytes and IPv4Address.
    """
    if isinstance(value, bool):
        raise AddressError(value)
    if isinstance(value, int):
        if not 0 <= value <= MAX_IPV4:
            raise AddressError(value, "outside 0.0.0.0-255.255.255.255")
        return value
    if isinstance(value, str):
        return parse_address(value)
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 4:
            raise AddressError(value, "expected 4 bytes")
        return int.from_bytes(value, "big")
    if isinstance(value, ipaddress.IPv4Address):
        return int(value)
    raise AddressError(value)


def is_reserved_suffix(num: int) -> bool:
    """Low octet 0 or 255 (network/broadcast-like)"""
    return num & 0xFF in (0, 255)


def is_private(address) -> bool:
    ip = ipaddress.IPv4Address(as_ipv4_int(address))
    return any(ip in net for net in PRIVATE_NETWORKS)
