import pytest
from request_middleware.settings import Settings


# Fixture to provide a Settings instance for each test
@pytest.fixture
def settings():
    return Settings()


# --- Parameterized Tests for Simple Getters ---


@pytest.mark.parametrize(
    "env_var, method_name, test_value, expected_value",
    [
        # Env Var Name, Settings Method Name, Value to Set, Expected Return
        ("REQUEST_BASE_URL", "get_base_url", "https://example.com/api", "https://example.com/api"),
        ("REQUEST_TIMEOUT", "get_default_timeout", "2.5", 2.5),
        ("LOG_LEVEL", "get_log_level", "debug", "DEBUG"),  # Should be uppercase
        ("RETRY_MAX_RETRIES", "get_retry_max_retries", "5", 5),
        ("RETRY_BACKOFF", "get_retry_backoff", "LINEAR", "linear"),
        ("RETRY_BASE_DELAY", "get_retry_base_delay", "0.25", 0.25),
        ("RETRY_MAX_DELAY", "get_retry_max_delay", "10", 10.0),
        ("THROTTLE_LIMIT", "get_throttle_limit", "20", 20),
        ("THROTTLE_INTERVAL", "get_throttle_interval", "0.5", 0.5),
        ("API_KEY_ENV_VAR", "get_api_key_env_var_name", "MY_KEY", "MY_KEY"),
    ],
)
def test_getter_set(settings, monkeypatch, env_var, method_name, test_value, expected_value):
    """Test getters when the corresponding environment variable is set."""
    monkeypatch.setenv(env_var, test_value)
    getter_method = getattr(settings, method_name)
    assert getter_method() == expected_value


@pytest.mark.parametrize(
    "method_name, expected_value",
    [
        # Settings Method Name, Expected Return when Not Set
        ("get_base_url", None),
        ("get_default_timeout", None),
        ("get_log_level", "INFO"),
        ("get_retry_max_retries", 3),
        ("get_retry_backoff", "exponential"),
        ("get_retry_base_delay", 1.0),
        ("get_retry_max_delay", 30.0),
        ("get_throttle_limit", 5),
        ("get_throttle_interval", 1.0),
        ("get_api_key_env_var_name", "API_KEY"),
    ],
)
def test_getter_not_set(settings, method_name, expected_value):
    """Test getters when the environment variable is not set (autouse fixture clears them)."""
    assert getattr(settings, method_name)() == expected_value


@pytest.mark.parametrize(
    "env_var, method_name, bad_value",
    [
        ("REQUEST_BASE_URL", "get_base_url", "not-a-url"),
        ("REQUEST_TIMEOUT", "get_default_timeout", "soon"),
        ("REQUEST_TIMEOUT", "get_default_timeout", "-1"),
        ("RETRY_MAX_RETRIES", "get_retry_max_retries", "three"),
        ("RETRY_MAX_RETRIES", "get_retry_max_retries", "-1"),
        ("RETRY_BACKOFF", "get_retry_backoff", "fibonacci"),
        ("RETRY_BASE_DELAY", "get_retry_base_delay", "fast"),
        ("RETRY_MAX_DELAY", "get_retry_max_delay", "slow"),
        ("THROTTLE_LIMIT", "get_throttle_limit", "0"),
        ("THROTTLE_INTERVAL", "get_throttle_interval", "often"),
    ],
)
def test_getter_invalid(settings, monkeypatch, env_var, method_name, bad_value):
    """Test getters raise ValueError for malformed values."""
    monkeypatch.setenv(env_var, bad_value)
    with pytest.raises(ValueError, match=env_var):
        getattr(settings, method_name)()
