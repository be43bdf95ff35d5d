import time
from dataclasses import dataclass
from typing import Optional

from app.errors import DeadlineExceededError


@dataclass(frozen=True)
class Deadline:
    """Absolute point in (monotonic) time by which a webhook delivery must finish."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(self.expires_at - time.monotonic(), 0.0)

    def expired(self) -> bool:
        return self.remaining() <= 0

    def check(self, hop: str) -> None:
        if self.expired():
            raise DeadlineExceededError(hop)


def clamp_timeout(default: float, deadline: Optional[Deadline], hop: str) -> float:
    """Timeout for one HTTP call: the configured default, cut to what the deadline leaves."""
    if deadline is None:
        return default
    deadline.check(hop)
    return min(default, deadline.remaining())
