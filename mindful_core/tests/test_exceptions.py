from mindful_core.domain.exceptions import (
    ApiError,
    RateLimitError,
    StoreError,
    describe_error,
)


def test_subclasses_carry_default_code_and_status():
    err = RateLimitError(message="slow down")
    assert (err.code, err.http_status) == ("RATE_LIMITED", 429)
    assert isinstance(err, ApiError)
    assert str(StoreError()) == "STORE_ERROR"


def test_log_fields_merge_extra():
    err = StoreError(code="STORE_API_ERROR", message="boom", http_status=500, table="messages")
    assert err.log_fields() == {"error_code": "STORE_API_ERROR", "error": "boom", "table": "messages"}


def test_describe_error_handles_plain_exceptions():
    assert describe_error(StoreError(message="down")) == ("STORE_ERROR", "down")
    assert describe_error(ConnectionResetError("peer reset")) == ("ConnectionResetError", "peer reset")
