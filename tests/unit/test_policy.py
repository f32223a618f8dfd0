"""Unit tests for retry policy and environment settings."""

import pytest
from pydantic import ValidationError

from reliable_stream.config import constants
from reliable_stream.config.settings import ReliabilitySettings
from reliable_stream.reliability.policy import RetryPolicy


@pytest.mark.unit
class TestRetryPolicy:

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.use_backoff is True
        assert policy.explicit_timeout == 30.0
        assert policy.contract_validation is False
        assert policy.effective_base_delay == 1.0
        assert policy.effective_multiplier == 2.0
        assert policy.per_attempt_min_delay == 1.0

    def test_flat_delay_without_backoff(self):
        policy = RetryPolicy(use_backoff=False, delay_multiplier=3.0)
        assert policy.effective_base_delay == 0.5
        assert policy.effective_multiplier == 1.0
        assert policy.backoff_delay(1) == 0.5
        assert policy.backoff_delay(3) == 0.5

    def test_retry_window_uses_explicit_timeout_when_larger(self):
        assert RetryPolicy().retry_window == 30.0

    def test_retry_window_grows_with_attempts(self):
        policy = RetryPolicy(max_attempts=9, explicit_timeout=2.0)
        assert policy.retry_window == pytest.approx(10.0)
        flat = RetryPolicy(max_attempts=9, use_backoff=False, explicit_timeout=2.0)
        assert flat.retry_window == pytest.approx(5.0)

    def test_backoff_delay_is_jittered_and_capped(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=3.0)
        for _ in range(20):
            assert 1.0 <= policy.backoff_delay(1) < 2.0
            assert 2.0 <= policy.backoff_delay(2) <= 3.0
            assert policy.backoff_delay(5) == 3.0

    def test_policy_is_immutable(self):
        policy = RetryPolicy()
        with pytest.raises(ValidationError):
            policy.max_attempts = 5

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"explicit_timeout": 0},
        {"base_delay": -1},
        {"delay_multiplier": 0.5},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            RetryPolicy(**kwargs)

    def test_from_config(self):
        policy = RetryPolicy.from_config({
            "retries": 5,
            "retry-backoff": False,
            "retry-timeout": 1500,
            "contract-validation": True,
        })
        assert policy.max_attempts == 5
        assert policy.use_backoff is False
        assert policy.explicit_timeout == 1.5
        assert policy.contract_validation is True

    def test_from_config_ignores_missing_keys(self):
        policy = RetryPolicy.from_config({"retries": None})
        assert policy == RetryPolicy()

    def test_retry_options_follow_policy(self):
        options = RetryPolicy(max_attempts=4, use_backoff=False).retry_options()
        assert options.attempts == 4
        assert options.delay == 0.5
        assert options.factor == 1.0
        assert options.jitter is False


@pytest.mark.unit
class TestReliabilitySettings:

    def test_defaults_from_empty_environment(self):
        settings = ReliabilitySettings.from_env({}, load_env_file=False)
        assert settings.retries == constants.DEFAULT_MAX_ATTEMPTS
        assert settings.retry_timeout_ms == 30000
        assert settings.producer is None

    def test_reads_environment(self):
        settings = ReliabilitySettings.from_env({
            constants.ENV_RETRIES: "4",
            constants.ENV_RETRY_BACKOFF: "off",
            constants.ENV_RETRY_TIMEOUT_MS: "2500",
            constants.ENV_CONTRACT_VALIDATION: "yes",
            constants.ENV_PRODUCER: "scripted-success",
        }, load_env_file=False)
        assert settings.retries == 4
        assert settings.retry_backoff is False
        assert settings.contract_validation is True
        assert settings.producer == "scripted-success"

        policy = settings.to_policy()
        assert policy.max_attempts == 4
        assert policy.use_backoff is False
        assert policy.explicit_timeout == 2.5
        assert policy.contract_validation is True

    def test_reads_process_environment(self, clean_env):
        clean_env.setenv(constants.ENV_RETRIES, "2")
        settings = ReliabilitySettings.from_env(load_env_file=False)
        assert settings.retries == 2

    def test_bad_boolean(self):
        with pytest.raises(ValueError, match=constants.ENV_RETRY_BACKOFF):
            ReliabilitySettings.from_env({constants.ENV_RETRY_BACKOFF: "maybe"}, load_env_file=False)

    def test_zero_retries_rejected(self):
        with pytest.raises(ValidationError):
            ReliabilitySettings.from_env({constants.ENV_RETRIES: "0"}, load_env_file=False)
