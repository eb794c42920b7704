import os
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load .env file variables into environment
load_dotenv(verbose=True)

VALID_BACKOFF_STRATEGIES = ("linear", "exponential")


class Settings:
    """Client configuration settings loaded from environment variables."""

    # --- Core Settings ---
    REQUEST_BASE_URL: Optional[str] = None
    REQUEST_TIMEOUT: Optional[float] = None

    # --- Retry Settings ---
    RETRY_MAX_RETRIES: int = 3
    RETRY_BACKOFF: str = "exponential"
    RETRY_BASE_DELAY: float = 1.0
    RETRY_MAX_DELAY: float = 30.0

    # --- Throttle Settings ---
    THROTTLE_LIMIT: int = 5
    THROTTLE_INTERVAL: float = 1.0

    # --- Helper Methods using os.getenv ---
    def get_base_url(self) -> Optional[str]:
        """Returns the default base URL for requests, if set."""
        url = os.getenv("REQUEST_BASE_URL")
        if url:
            parsed = urlparse(url)
            if not all([parsed.scheme, parsed.netloc]):
                raise ValueError(f"Invalid REQUEST_BASE_URL format: {url}")
        return url

    def get_default_timeout(self) -> Optional[float]:
        """Returns the default request timeout in seconds, or None if not set."""
        timeout_str = os.getenv("REQUEST_TIMEOUT")
        if timeout_str is None:
            return None
        try:
            timeout = float(timeout_str)
        except ValueError:
            raise ValueError("REQUEST_TIMEOUT environment variable must be a number.")
        if timeout <= 0:
            raise ValueError("REQUEST_TIMEOUT environment variable must be positive.")
        return timeout

    # --- Logging Settings ---
    def get_log_level(self, default: str = "INFO") -> str:
        """Gets the configured log level, defaulting if not set."""
        return os.getenv("LOG_LEVEL", default).upper()

    # --- Retry Settings Getters ---
    def get_retry_max_retries(self) -> int:
        """Returns the number of additional attempts after a failed request."""
        try:
            value = int(os.getenv("RETRY_MAX_RETRIES", str(self.RETRY_MAX_RETRIES)))
        except ValueError:
            raise ValueError("RETRY_MAX_RETRIES environment variable must be an integer.")
        if value < 0:
            raise ValueError("RETRY_MAX_RETRIES environment variable must not be negative.")
        return value

    def get_retry_backoff(self) -> str:
        """Returns the backoff strategy, either 'linear' or 'exponential'."""
        backoff = os.getenv("RETRY_BACKOFF", self.RETRY_BACKOFF).lower()
        if backoff not in VALID_BACKOFF_STRATEGIES:
            raise ValueError(
                f"RETRY_BACKOFF must be one of {', '.join(VALID_BACKOFF_STRATEGIES)}, got '{backoff}'."
            )
        return backoff

    def get_retry_base_delay(self) -> float:
        try:
            return float(os.getenv("RETRY_BASE_DELAY", str(self.RETRY_BASE_DELAY)))
        except ValueError:
            raise ValueError("RETRY_BASE_DELAY environment variable must be a number.")

    def get_retry_max_delay(self) -> float:
        try:
            return float(os.getenv("RETRY_MAX_DELAY", str(self.RETRY_MAX_DELAY)))
        except ValueError:
            raise ValueError("RETRY_MAX_DELAY environment variable must be a number.")

    # --- Throttle Settings Getters ---
    def get_throttle_limit(self) -> int:
        """Returns the maximum number of requests admitted per throttle interval."""
        try:
            value = int(os.getenv("THROTTLE_LIMIT", str(self.THROTTLE_LIMIT)))
        except ValueError:
            raise ValueError("THROTTLE_LIMIT environment variable must be an integer.")
        if value < 1:
            raise ValueError("THROTTLE_LIMIT environment variable must be at least 1.")
        return value

    def get_throttle_interval(self) -> float:
        """Returns the throttle window length in seconds."""
        try:
            return float(os.getenv("THROTTLE_INTERVAL", str(self.THROTTLE_INTERVAL)))
        except ValueError:
            raise ValueError("THROTTLE_INTERVAL environment variable must be a number.")

    # --- Auth Settings ---
    def get_api_key_env_var_name(self) -> str:
        """Returns the name of the environment variable holding the outgoing API key."""
        return os.getenv("API_KEY_ENV_VAR", "API_KEY")
