"""Configuration constants for the interception engine and scenario driver."""

DEFAULT_BASE_URL: str = "http://localhost:5173"
STRICT_MODE_DEFAULT: bool = True
DEFAULT_POLL_INTERVAL_MS: int = 25
DEFAULT_WAIT_TIMEOUT_MS: int = 5_000
DEFAULT_NAVIGATION_TIMEOUT_MS: int = 10_000
DEFAULT_SCENARIO_TIMEOUT_MS: int = 30_000
CALL_LOG_BUFFER_SIZE: int = 1_000
MAX_STEPS_PER_SCENARIO: int = 200
PASSTHROUGH_TIMEOUT_SECS: int = 10
LOG_FORMAT: str = "plain"
DUPLICATE_REGISTRATION_POLICY: str = "allow"
