"""
Packed bit set with population count
Used by the pool to remember which offsets were released
"""

from typing import Optional


class Bitmap:
    """Fixed-capacity set of small integers stored one bit each"""

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self._capacity = capacity
        self._bits = bytearray((capacity + 7) // 8)
        self._ones = 0
        # No byte below this index has a set bit
        self._low_byte = 0

    def __len__(self) -> int:
        return self._capacity

    def __repr__(self):
        return f"<Bitmap {self._ones}/{self._capacity}>"

    def set(self, i: int) -> None:
        """Set bit i; out-of-range indices are ignored"""
        if 0 <= i < self._capacity:
            offset = i >> 3
            mask = 1 << (i & 7)
            # Only count 0 -> 1 transitions
            if not self._bits[offset] & mask:
                self._bits[offset] |= mask
                self._ones += 1
                if offset < self._low_byte:
                    self._low_byte = offset

    def unset(self, i: int) -> None:
        """Clear bit i; out-of-range indices are ignored"""
        if 0 <= i < self._capacity:
            offset = i >> 3
            mask = 1 << (i & 7)
            if self._bits[offset] & mask:
                self._bits[offset] &= ~mask & 0xFF
                self._ones -= 1

    def get(self, i: int) -> bool:
        if 0 <= i < self._capacity:
            return bool(self._bits[i >> 3] & (1 << (i & 7)))
        return False

    def lowest_set_index(self) -> Optional[int]:
        """
        Smallest set index, or None when the bitmap is empty.

        Scans bytes in ascending order starting at the low-water byte, then
        takes the lowest set bit of the first nonzero byte.
        """
        if self._ones == 0:
            return None

        bits = self._bits
        for offset in range(self._low_byte, len(bits)):
            byte = bits[offset]
            if byte:
                self._low_byte = offset
                return offset * 8 + ((byte & -byte).bit_length() - 1)

        # Unreachable while _ones is accurate
        return None

    def count(self) -> int:
        """Number of set bits"""
        return self._ones
