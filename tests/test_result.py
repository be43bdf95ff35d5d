from app.errors import ExternalServiceError
from app.services.result import Result


class TestResultSuccess:
    def test_success_creates_ok_result(self):
        result = Result.success("test value")
        assert result.ok is True
        assert result.value == "test value"
        assert result.error is None

    def test_success_with_none_value(self):
        result = Result.success(None)
        assert result.ok is True
        assert result.value is None


class TestResultFailure:
    def test_failure_creates_not_ok_result(self):
        result = Result.failure("Something went wrong", "test_error")
        assert result.ok is False
        assert result.error == "Something went wrong"
        assert result.error_code == "test_error"
        assert result.value is None

    def test_failure_default_code(self):
        result = Result.failure("Error message")
        assert result.error_code == "unknown"


class TestResultFromException:
    def test_uses_exception_message(self):
        result = Result.from_exception(ExternalServiceError("whatsapp.send", "boom"), "typing_indicator_failed")
        assert result.ok is False
        assert result.error == "whatsapp.send: boom"
        assert result.error_code == "typing_indicator_failed"

    def test_empty_message_falls_back_to_type_name(self):
        result = Result.from_exception(RuntimeError(), "deactivate_siblings_failed")
        assert result.error == "RuntimeError"


class TestResultUnwrapOr:
    def test_unwrap_or_returns_value_on_success(self):
        result = Result.success(3)
        assert result.unwrap_or(0) == 3

    def test_unwrap_or_returns_default_on_failure(self):
        result = Result.failure("Error", "code")
        assert result.unwrap_or(0) == 0

    def test_unwrap_or_with_none_value(self):
        result = Result.success(None)
        assert result.unwrap_or("default") is None
