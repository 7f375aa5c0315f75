"""
Clock and randomness provider.

Services never call datetime.now() or the secrets module directly; they take a
Clock so tests can freeze and advance time and pin generated codes.
"""
import secrets
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time, naive, matching the DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock:
    """Wall clock plus a cryptographically strong random source"""

    def now(self) -> datetime:
        return utc_now()

    def secure_random_int(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both ends inclusive"""
        if high < low:
            raise ValueError("high must be >= low")
        return low + secrets.randbelow(high - low + 1)

    def secure_random_token(self, nbytes: int = 32) -> str:
        """Hex encoded token with nbytes of entropy"""
        return secrets.token_hex(nbytes)


system_clock = Clock()
