"""
IPv4 address range
Inclusive [begin, end] interval of 32-bit address numbers
"""

import ipaddress
from typing import Iterator, List, Tuple

from errors import InvalidRangeError
from ipcodec import MAX_IPV4, as_ipv4_int, format_address, parse_cidr


class IPRange:
    """
    Inclusive range of IPv4 addresses.

    Endpoints accept any address form understood by ipcodec.as_ipv4_int.
    pop_*/trim_left/trim_right shrink the range in place; everything else
    returns new ranges. A failed operation never mutates the range.
    """

    __slots__ = ("_begin", "_end")

    def __init__(self, begin, end):
        begin_num = as_ipv4_int(begin)
        end_num = as_ipv4_int(end)
        if begin_num > end_num:
            raise InvalidRangeError(
                f"ipRange begin > end: {format_address(begin_num)} > "
                f"{format_address(end_num)}"
            )
        self._begin = begin_num
        self._end = end_num

    @classmethod
    def from_network_mask(cls, address, mask_bits: int) -> "IPRange":
        """Range covering the network of address/mask_bits"""
        if not 0 <= mask_bits <= 32:
            raise InvalidRangeError(f"mask bits must be 0-32, got {mask_bits}")
        host_bits = 32 - mask_bits
        # Clear host bits to get the network address
        begin = as_ipv4_int(address) & (MAX_IPV4 ^ ((1 << host_bits) - 1))
        return cls(begin, begin + (1 << host_bits) - 1)

    @classmethod
    def from_cidr(cls, text: str) -> "IPRange":
        """Range from CIDR text, e.g. 192.168.31.0/24"""
        network, prefixlen = parse_cidr(text)
        return cls.from_network_mask(network, prefixlen)

    @classmethod
    def parse(cls, text: str) -> "IPRange":
        """Range from 'a.b.c.d/n', 'a.b.c.d-e.f.g.h' or a single address"""
        text = text.strip()
        if "/" in text:
            return cls.from_cidr(text)
        if "-" in text:
            begin, _, end = text.partition("-")
            return cls(begin.strip(), end.strip())
        return cls(text, text)

    # ---- accessors ----

    @property
    def begin_num(self) -> int:
        return self._begin

    @property
    def end_num(self) -> int:
        return self._end

    @property
    def first_ip(self) -> str:
        return format_address(self._begin)

    @property
    def last_ip(self) -> str:
        return format_address(self._end)

    @property
    def size(self) -> int:
        return self._end - self._begin + 1

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[int]:
        return iter(range(self._begin, self._end + 1))

    def __str__(self):
        return f"[{self.first_ip} - {self.last_ip}]"

    def __repr__(self):
        return f"<IPRange {self.first_ip}-{self.last_ip}>"

    def __eq__(self, other):
        if not isinstance(other, IPRange):
            return NotImplemented
        return (self._begin, self._end) == (other._begin, other._end)

    def __hash__(self):
        return hash((self._begin, self._end))

    def copy(self) -> "IPRange":
        return IPRange(self._begin, self._end)

    def at(self, i: int) -> int:
        """
        Address number at offset i.
        i >= 0 counts from begin, i < 0 counts from end (-1 is the last).
        """
        if i >= 0:
            if i >= self.size:
                raise IndexError(f"offset {i} outside {self}")
            return self._begin + i
        if -i > self.size:
            raise IndexError(f"offset {i} outside {self}")
        return self._end + i + 1

    def has(self, address) -> bool:
        n = as_ipv4_int(address)
        return self._begin <= n <= self._end

    def __contains__(self, address) -> bool:
        return self.has(address)

    def has_overlap(self, other: "IPRange") -> bool:
        return not (other._end < self._begin or other._begin > self._end)

    def to_cidrs(self) -> List[str]:
        """Minimal list of CIDR blocks covering the range"""
        return [
            str(net)
            for net in ipaddress.summarize_address_range(
                ipaddress.IPv4Address(self._begin), ipaddress.IPv4Address(self._end)
            )
        ]

    # ---- split / pop / trim ----

    def split(self, n: int) -> Tuple["IPRange", "IPRange"]:
        """Split into [begin, begin+n-1] and [begin+n, end]"""
        if not 1 <= n < self.size:
            raise InvalidRangeError(f"cannot split {self} at {n}")
        mid = self._begin + n
        return IPRange(self._begin, mid - 1), IPRange(mid, self._end)

    def pop_left(self) -> int:
        """Remove and return the first address"""
        if self._begin >= self._end:
            raise InvalidRangeError("ipRange begin >= end")
        num = self._begin
        self._begin += 1
        return num

    def pop_right(self) -> int:
        """Remove and return the last address"""
        if self._begin >= self._end:
            raise InvalidRangeError("ipRange begin >= end")
        num = self._end
        self._end -= 1
        return num

    def trim_left(self, count: int) -> "IPRange":
        """Remove count addresses from the front and return them"""
        if not 1 <= count < self.size:
            raise InvalidRangeError(f"cannot trim {count} from left of {self}")
        removed = IPRange(self._begin, self._begin + count - 1)
        self._begin += count
        return removed

    def trim_right(self, count: int) -> "IPRange":
        """Remove count addresses from the back and return them"""
        if not 1 <= count < self.size:
            raise InvalidRangeError(f"cannot trim {count} from right of {self}")
        removed = IPRange(self._end - count + 1, self._end)
        self._end -= count
        return removed

    def trim(self, left_count: int, right_count: int) -> "IPRange":
        """Narrowed copy; self is not modified"""
        if left_count < 0 or right_count < 0:
            raise InvalidRangeError("trim counts must be >= 0")
        if left_count + right_count >= self.size:
            raise InvalidRangeError(
                f"cannot trim {left_count}+{right_count} from {self}"
            )
        return IPRange(self._begin + left_count, self._end - right_count)
