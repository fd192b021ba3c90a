"""
IP Pool errors
Every failure of the range/pool/registry layer is one of these
"""


class IPPoolError(Exception):
    """Base class for all ippool errors"""


class ConfigError(IPPoolError):
    """Config file unreadable or malformed"""


class AddressError(IPPoolError, ValueError):
    """Value cannot be read as an IPv4 address"""

    def __init__(self, value, reason: str = "not an IPv4 address"):
        self.value = value
        super().__init__(f"{value!r}: {reason}")


class InvalidRangeError(IPPoolError, ValueError):
    """Range would be inverted, empty or otherwise malformed"""


class PoolTooLargeError(IPPoolError):
    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"pool of {size} addresses exceeds limit of {max_size}")


class ExhaustedError(IPPoolError):
    """No recycled address left and the cursor reached the end of the range"""

    def __init__(self, ip_range):
        self.ip_range = ip_range
        super().__init__(f"ip exhausted in {ip_range}")


class ReleaseError(IPPoolError):
    """Base class for a rejected release"""

    message = "release rejected"

    def __init__(self, address: int):
        self.address = address
        super().__init__(f"{_dotted(address)}: {self.message}")


class OutOfRangeError(ReleaseError):
    message = "ip not in range"


class NotAllocatedError(ReleaseError):
    message = "ip was never allocated"


class ReservedAddressError(NotAllocatedError):
    message = "ip ends in .0 or .255 and is never allocated"


class AlreadyRecycledError(ReleaseError):
    message = "ip already in pool"


class PoolExistsError(IPPoolError):
    pass


class PoolNotFoundError(IPPoolError, KeyError):
    def __str__(self):
        # KeyError quotes its argument
        return str(self.args[0]) if self.args else ""


class PoolOverlapError(IPPoolError):
    def __init__(self, name: str, other: str, ip_range):
        self.name = name
        self.other = other
        self.ip_range = ip_range
        super().__init__(f"pool '{name}' {ip_range} overlaps pool '{other}'")


def _dotted(n: int) -> str:
    # errors.py sits below ipcodec, so no import from there
    return ".".join(str((n >> shift) & 0xFF) for shift in (24, 16, 8, 0))
