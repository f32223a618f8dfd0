"""
Reliability defaults.

Central location for the thresholds and defaults used by the retry
coordinator, the reliability primitives and the connection health monitor.
All durations are in seconds unless the name says otherwise.
"""

# Stream retry coordinator defaults
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_USE_BACKOFF = True
DEFAULT_RETRY_TIMEOUT = 30.0
DEFAULT_CONTRACT_VALIDATION = False
BACKOFF_BASE_DELAY = 1.0
FLAT_BASE_DELAY = 0.5
DEFAULT_DELAY_MULTIPLIER = 2.0

# Generic retry loop defaults (connection-level operations)
DEFAULT_OPERATION_TIMEOUT = 30.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 0.5
DEFAULT_RETRY_FACTOR = 2.0
DEFAULT_RETRY_MAX_DELAY = 10.0

# Connection health monitor
HEALTH_MAX_ERRORS = 3
HEALTH_MAX_AGE = 5 * 60.0
HEALTH_STALE_AGE = 10 * 60.0
HEALTH_SWEEP_INTERVAL = 60.0

# Schema-gated relay
DEFAULT_SCHEMA_MAX_ATTEMPTS = 3

# Environment variables read by ReliabilitySettings
ENV_PREFIX = "RELIABLE_STREAM_"
ENV_RETRIES = f"{ENV_PREFIX}RETRIES"
ENV_RETRY_BACKOFF = f"{ENV_PREFIX}RETRY_BACKOFF"
ENV_RETRY_TIMEOUT_MS = f"{ENV_PREFIX}RETRY_TIMEOUT_MS"
ENV_CONTRACT_VALIDATION = f"{ENV_PREFIX}CONTRACT_VALIDATION"
ENV_PRODUCER = f"{ENV_PREFIX}PRODUCER"
