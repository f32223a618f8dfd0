"""
Retry policy for one stream invocation.

The policy is computed once at invocation start and never mutated; the
derived retry window bounds the wall-clock time of the whole setup phase.
"""

from typing import Any, Awaitable, Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import constants
from .retry import RetryOptions


class RetryPolicy(BaseModel):
    """
    Immutable retry configuration.
    
    Unset delay fields are resolved from ``use_backoff``: under backoff the
    base delay is 1s and grows by ``delay_multiplier`` (2 by default); without
    backoff a flat 0.5s delay is used between attempts.
    
    Attributes:
        max_attempts: Total setup attempts allowed (>= 1)
        use_backoff: Grow the delay exponentially (with jitter) between attempts
        base_delay: Delay before the second attempt, in seconds
        delay_multiplier: Growth factor applied per attempt under backoff
        max_delay: Upper bound on any single delay (defaults to explicit_timeout)
        explicit_timeout: Requested retry window, in seconds
        contract_validation: Validate every event against the event contract
    """
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=constants.DEFAULT_MAX_ATTEMPTS, ge=1)
    use_backoff: bool = constants.DEFAULT_USE_BACKOFF
    base_delay: Optional[float] = Field(default=None, ge=0.0)
    delay_multiplier: Optional[float] = Field(default=None, ge=1.0)
    max_delay: Optional[float] = Field(default=None, ge=0.0)
    explicit_timeout: float = Field(default=constants.DEFAULT_RETRY_TIMEOUT, gt=0.0)
    contract_validation: bool = constants.DEFAULT_CONTRACT_VALIDATION

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RetryPolicy":
        """
        Build a policy from CLI-style configuration keys.
        
        Recognised keys are ``retries``, ``retry-backoff``, ``retry-timeout``
        (milliseconds) and ``contract-validation``; absent or ``None`` values
        fall back to the defaults.
        """
        values = {}
        if config.get("retries") is not None:
            values["max_attempts"] = config["retries"]
        if config.get("retry-backoff") is not None:
            values["use_backoff"] = config["retry-backoff"]
        if config.get("retry-timeout") is not None:
            values["explicit_timeout"] = config["retry-timeout"] / 1000.0
        if config.get("contract-validation") is not None:
            values["contract_validation"] = config["contract-validation"]
        return cls(**values)

    @property
    def effective_base_delay(self) -> float:
        if self.base_delay is not None:
            return self.base_delay
        return constants.BACKOFF_BASE_DELAY if self.use_backoff else constants.FLAT_BASE_DELAY

    @property
    def effective_multiplier(self) -> float:
        if not self.use_backoff:
            return 1.0
        if self.delay_multiplier is not None:
            return self.delay_multiplier
        return constants.DEFAULT_DELAY_MULTIPLIER

    @property
    def effective_max_delay(self) -> float:
        if self.max_delay is not None:
            return self.max_delay
        return self.explicit_timeout

    @property
    def per_attempt_min_delay(self) -> float:
        return self.effective_base_delay

    @property
    def retry_window(self) -> float:
        """Wall-clock budget for every setup attempt of one invocation."""
        return max(
            self.explicit_timeout,
            (self.max_attempts + 1) * self.per_attempt_min_delay,
        )

    def backoff_delay(self, attempt: int) -> float:
        """
        Delay to wait after failed attempt number ``attempt`` (1-based).

        Under backoff the exponential value is scaled by a random factor in
        [1, 2) before the ``max_delay`` cap is applied.
        """
        return self.retry_options().compute_delay(attempt)

    def retry_options(
        self,
        retry_if: Optional[Callable[[BaseException], bool]] = None,
        on_failed_attempt: Optional[Callable[[BaseException, int], None]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> RetryOptions:
        """Options for driving setup attempts through the generic retry loop."""
        options = RetryOptions(
            attempts=self.max_attempts,
            delay=self.effective_base_delay,
            factor=self.effective_multiplier,
            max_delay=self.effective_max_delay,
            jitter=self.use_backoff,
            on_failed_attempt=on_failed_attempt,
        )
        if retry_if is not None:
            options.retry_if = retry_if
        if sleep is not None:
            options.sleep = sleep
        return options
