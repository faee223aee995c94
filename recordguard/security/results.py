# /recordguard/security/results.py
import enum
from dataclasses import dataclass


class Outcome(str, enum.Enum):
    ALLOW = 'allow'
    DENY = 'deny'
    THROTTLED = 'throttled'
    FAILURE = 'failure'


@dataclass(frozen=True)
class Decision:
    """Result of a security check.

    `permitted` is what the caller acts on. It is True for ALLOW, False for
    DENY and THROTTLED, and for FAILURE it carries the check's failure
    policy: closed (False) for access and token checks, open (True) for the
    rate limiter. `reason` is internal detail for logs and audit metadata;
    it must not be shown to the end user.
    """
    outcome: Outcome
    permitted: bool
    reason: str | None = None

    @classmethod
    def allow(cls, reason=None):
        return cls(Outcome.ALLOW, True, reason)

    @classmethod
    def deny(cls, reason):
        return cls(Outcome.DENY, False, reason)

    @classmethod
    def throttled(cls, reason):
        return cls(Outcome.THROTTLED, False, reason)

    @classmethod
    def failure(cls, reason, permitted=False):
        return cls(Outcome.FAILURE, permitted, reason)

    @property
    def is_failure(self) -> bool:
        return self.outcome is Outcome.FAILURE

    def __bool__(self):
        return self.permitted
