"""
IP Allocator - Recycle-First Address Pool
Leases single addresses from an IPRange: released addresses are reused
lowest-first, then a cursor hands out never-issued ones.
Also handles a registry of named, non-overlapping pools.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Union

from bitmap import Bitmap
from errors import (
    AlreadyRecycledError,
    ExhaustedError,
    NotAllocatedError,
    OutOfRangeError,
    PoolExistsError,
    PoolNotFoundError,
    PoolOverlapError,
    PoolTooLargeError,
    ReservedAddressError,
)
from ipcodec import as_ipv4_int, format_address, is_reserved_suffix
from iprange import IPRange

logger = logging.getLogger(__name__)

# One bit per address: a /8 costs 2 MiB
DEFAULT_MAX_POOL_SIZE = 1 << 24


@dataclass(frozen=True)
class PoolStats:
    size: int
    issued: int  # offsets the cursor has passed
    recycled: int
    outstanding: int
    skipped: int = 0  # reserved suffixes the cursor stepped over
    wraps: int = 0  # loop restarts; counts above cover leases since the last one

    @property
    def utilization(self) -> float:
        usable = self.size - self.skipped
        return (self.outstanding / usable) * 100 if usable > 0 else 0.0


class IPPool:
    """
    Thread-safe lease ledger over one IPRange.

    Offset i of the range is in one of three states: unissued (i >= cursor),
    outstanding, or recycled (bit i set in the recycle bitmap). acquire()
    drains the recycle bitmap lowest-first before advancing the cursor.

    loop=True restarts the cursor at offset 0 on exhaustion instead of
    raising. That is only safe if every earlier lease has been given back:
    a still-outstanding address can be handed out a second time.

    skip_reserved=True never hands out addresses ending in .0 or .255.
    """

    def __init__(
        self,
        ip_range: IPRange,
        *,
        max_size: int = DEFAULT_MAX_POOL_SIZE,
        loop: bool = False,
        skip_reserved: bool = False,
    ):
        if ip_range.size > max_size:
            raise PoolTooLargeError(ip_range.size, max_size)

        # Private copy; callers may keep popping/trimming theirs
        self._range = ip_range.copy()
        self._begin = self._range.begin_num
        self._size = self._range.size
        self._recycled = Bitmap(self._size)
        self._next_offset = 0
        self._skipped = 0
        self._wraps = 0
        self._loop = loop
        self._skip_reserved = skip_reserved
        self._lock = threading.Lock()

    def __repr__(self):
        return f"<IPPool {self._range} next={self._next_offset}>"

    @property
    def ip_range(self) -> IPRange:
        return self._range.copy()

    @property
    def loop(self) -> bool:
        return self._loop

    def set_loop(self, loop: bool) -> None:
        """Enable/disable cursor restart on exhaustion (see class docstring)"""
        with self._lock:
            self._loop = loop

    @property
    def skip_reserved(self) -> bool:
        return self._skip_reserved

    def _advance(self) -> Optional[int]:
        """Next never-issued address from the cursor, or None at the end"""
        while self._next_offset < self._size:
            num = self._begin + self._next_offset
            self._next_offset += 1
            if self._skip_reserved and is_reserved_suffix(num):
                self._skipped += 1
                continue
            return num
        return None

    def acquire(self) -> int:
        """Lease one address number"""
        with self._lock:
            index = self._recycled.lowest_set_index()
            if index is not None:
                self._recycled.unset(index)
                num = self._begin + index
                logger.debug("acquire %s from recycled", format_address(num))
                return num

            cursor = (self._next_offset, self._skipped, self._wraps)
            num = self._advance()
            if num is None and self._loop:
                # The recycle bitmap is empty here, so offset 0.. is unissued again
                logger.warning("pool %s wrapped, reissuing from start", self._range)
                self._next_offset = 0
                self._skipped = 0
                self._wraps += 1
                num = self._advance()

            if num is None:
                self._next_offset, self._skipped, self._wraps = cursor
                raise ExhaustedError(self._range.copy())

            logger.debug("acquire %s", format_address(num))
            return num

    def release(self, address) -> None:
        """
        Give a leased address back for reuse.

        Raises OutOfRangeError, NotAllocatedError (ReservedAddressError in
        skip_reserved mode) or AlreadyRecycledError; state is untouched on
        failure.
        """
        num = as_ipv4_int(address)
        with self._lock:
            if not self._range.has(num):
                raise OutOfRangeError(num)

            offset = num - self._begin
            if offset >= self._next_offset:
                raise NotAllocatedError(num)

            if self._skip_reserved and is_reserved_suffix(num):
                raise ReservedAddressError(num)

            if self._recycled.get(offset):
                raise AlreadyRecycledError(num)

            self._recycled.set(offset)
            logger.debug("release %s", format_address(num))

    def acquire_ip(self) -> str:
        return format_address(self.acquire())

    def release_ip(self, address) -> None:
        self.release(address)

    def is_outstanding(self, address) -> bool:
        """True if address is currently leased to someone"""
        num = as_ipv4_int(address)
        with self._lock:
            if not self._range.has(num):
                return False
            offset = num - self._begin
            if offset >= self._next_offset:
                return False
            if self._skip_reserved and is_reserved_suffix(num):
                return False
            return not self._recycled.get(offset)

    def stats(self) -> PoolStats:
        """
        Usage counters. After a loop wrap, issued and outstanding only count
        leases made since the last wrap; wraps says how many there were.
        """
        with self._lock:
            recycled = self._recycled.count()
            return PoolStats(
                size=self._size,
                issued=self._next_offset,
                recycled=recycled,
                outstanding=self._next_offset - self._skipped - recycled,
                skipped=self._skipped,
                wraps=self._wraps,
            )


class PoolRegistry:
    """
    Named pools whose ranges never overlap.
    Used to split one block of address space between several pools.
    """

    def __init__(self, **pool_defaults):
        self._pool_defaults = pool_defaults
        self._pools: Dict[str, IPPool] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._pools)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __contains__(self, name: str) -> bool:
        return name in self._pools

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._pools)

    def add(self, name: str, ip_range: Union[IPRange, str], **pool_options) -> IPPool:
        """Create a pool; its range must not overlap any existing pool"""
        if isinstance(ip_range, str):
            ip_range = IPRange.parse(ip_range)

        options = dict(self._pool_defaults)
        options.update(pool_options)

        with self._lock:
            if name in self._pools:
                raise PoolExistsError(f"pool '{name}' already exists")

            for other_name, other in self._pools.items():
                if other._range.has_overlap(ip_range):
                    raise PoolOverlapError(name, other_name, ip_range)

            pool = IPPool(ip_range, **options)
            self._pools[name] = pool

        logger.debug("registered pool %s %s", name, ip_range)
        return pool

    def get(self, name: str) -> IPPool:
        with self._lock:
            try:
                return self._pools[name]
            except KeyError:
                raise PoolNotFoundError(f"pool '{name}' not found") from None

    def remove(self, name: str) -> None:
        with self._lock:
            if self._pools.pop(name, None) is None:
                raise PoolNotFoundError(f"pool '{name}' not found")

    def find(self, address) -> Optional[str]:
        """Name of the pool whose range holds address"""
        num = as_ipv4_int(address)
        with self._lock:
            for name, pool in self._pools.items():
                if pool._range.has(num):
                    return name
        return None
