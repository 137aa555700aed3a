"""
The retry policy used when a generated key collides with a message already
being delivered.
"""

# System imports
#
import os
from dataclasses import dataclass
from typing import Mapping, Optional


########################################################################
########################################################################
#
@dataclass(frozen=True)
class Backoff:
    """
    How many keys delivery will try before giving up, and how long to wait
    between tries. The wait before retry `attempt` (counting from 0) is
    `initial_delay * multiplier ** attempt`, capped at `max_delay`.

    The defaults are a fixed 2 second wait, tried at most 5 times.
    """

    max_attempts: int = 5
    initial_delay: float = 2.0
    multiplier: float = 1.0
    max_delay: float = 30.0

    ####################################################################
    #
    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be at least 1, not {self.max_attempts}"
            )
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays can not be negative")
        if self.multiplier < 1:
            raise ValueError(
                f"multiplier must be at least 1, not {self.multiplier}"
            )

    ####################################################################
    #
    def delay(self, attempt: int) -> float:
        # Grow one step at a time so a large attempt never overflows a float.
        #
        delay = self.initial_delay
        for _ in range(attempt):
            if delay >= self.max_delay or delay == 0 or self.multiplier == 1:
                break
            delay *= self.multiplier
        return min(delay, self.max_delay)

    ####################################################################
    #
    @classmethod
    def from_env(cls, config: Optional[Mapping[str, Optional[str]]] = None):
        """
        Build a Backoff from `ASMAILDIR_*` settings in `config`, which is
        typically the result of `dotenv_values()`. Settings not in `config`
        are looked up in the environment. Anything not set at all gets the
        default.
        """
        config = os.environ if config is None else config
        kwargs = {}
        for var, field, conv in (
            ("ASMAILDIR_MAX_ATTEMPTS", "max_attempts", int),
            ("ASMAILDIR_RETRY_DELAY", "initial_delay", float),
            ("ASMAILDIR_RETRY_MULTIPLIER", "multiplier", float),
            ("ASMAILDIR_MAX_DELAY", "max_delay", float),
        ):
            value = config.get(var) or os.environ.get(var)
            if value:
                kwargs[field] = conv(value)
        return cls(**kwargs)
