from field_rate_limit.core.errors import ConfigurationError, RateLimitError, StoreError, is_rate_limit_error


def test_rate_limit_error_carries_message_and_marker() -> None:
    err = RateLimitError("Some message")

    assert str(err) == "Some message"
    assert err.message == "Some message"
    assert err.is_rate_limit_error is True
    assert is_rate_limit_error(err)


def test_is_rate_limit_error_only_matches_marked_errors() -> None:
    class FrameworkError(Exception):
        is_rate_limit_error = True

    assert is_rate_limit_error(FrameworkError())
    assert not is_rate_limit_error(ValueError("nope"))
    assert not is_rate_limit_error(StoreError("get", ValueError("nope")))


def test_store_error_wraps_original() -> None:
    original = ConnectionError("redis down")
    err = StoreError("set", original)

    assert err.operation == "set"
    assert err.original is original
    assert "set" in str(err)
    assert "ConnectionError" in str(err)


def test_configuration_error_is_a_runtime_error() -> None:
    assert issubclass(ConfigurationError, RuntimeError)
