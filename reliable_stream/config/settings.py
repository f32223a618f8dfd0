"""Environment-driven settings for the reliability layer."""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from . import constants
from ..reliability.policy import RetryPolicy

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _parse_bool(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


class ReliabilitySettings(BaseModel):
    """
    Reliability settings resolved from the process environment.
    
    Values use the same units as the CLI configuration they mirror:
    the retry timeout is expressed in milliseconds.
    """
    retries: int = Field(default=constants.DEFAULT_MAX_ATTEMPTS, ge=1)
    retry_backoff: bool = constants.DEFAULT_USE_BACKOFF
    retry_timeout_ms: int = Field(default=int(constants.DEFAULT_RETRY_TIMEOUT * 1000), gt=0)
    contract_validation: bool = constants.DEFAULT_CONTRACT_VALIDATION
    producer: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        load_env_file: bool = True,
    ) -> "ReliabilitySettings":
        """
        Build settings from environment variables.
        
        Args:
            environ: Mapping to read from (defaults to ``os.environ``)
            load_env_file: Load a ``.env`` file into ``os.environ`` first
            
        Returns:
            ReliabilitySettings with unset variables left at their defaults
        """
        if load_env_file:
            load_dotenv()
        env = os.environ if environ is None else environ

        values = {}
        if env.get(constants.ENV_RETRIES):
            values["retries"] = int(env[constants.ENV_RETRIES])
        if env.get(constants.ENV_RETRY_BACKOFF):
            values["retry_backoff"] = _parse_bool(
                env[constants.ENV_RETRY_BACKOFF], constants.ENV_RETRY_BACKOFF
            )
        if env.get(constants.ENV_RETRY_TIMEOUT_MS):
            values["retry_timeout_ms"] = int(env[constants.ENV_RETRY_TIMEOUT_MS])
        if env.get(constants.ENV_CONTRACT_VALIDATION):
            values["contract_validation"] = _parse_bool(
                env[constants.ENV_CONTRACT_VALIDATION], constants.ENV_CONTRACT_VALIDATION
            )
        if env.get(constants.ENV_PRODUCER):
            values["producer"] = env[constants.ENV_PRODUCER]
        return cls(**values)

    def to_policy(self) -> RetryPolicy:
        """Convert to the immutable per-invocation retry policy."""
        return RetryPolicy(
            max_attempts=self.retries,
            use_backoff=self.retry_backoff,
            explicit_timeout=self.retry_timeout_ms / 1000.0,
            contract_validation=self.contract_validation,
        )
