from convo_core.services.result import FailureCode, Result


class TestResultSuccess:
    def test_success_creates_ok_result(self):
        result = Result.success("test value")
        assert result.ok is True
        assert result.value == "test value"
        assert result.error is None

    def test_success_with_falsy_value(self):
        result = Result.success([])
        assert result.ok is True
        assert result.value == []


class TestResultFailure:
    def test_failure_with_enum_code(self):
        result = Result.failure("statement timeout", FailureCode.TIMEOUT)
        assert result.ok is False
        assert result.error_code == "timeout"
        assert result.timed_out is True

    def test_failure_with_string_code(self):
        result = Result.failure("bad", "invalid_input")
        assert result.error_code == "invalid_input"
        assert result.timed_out is False

    def test_failure_default_code(self):
        assert Result.failure("Error message").error_code == "unknown"


class TestResultUnwrapOr:
    def test_unwrap_or_returns_value_on_success(self):
        assert Result.success("actual value").unwrap_or("default") == "actual value"

    def test_unwrap_or_returns_default_on_failure(self):
        assert Result.failure("Error", FailureCode.DB_ERROR).unwrap_or("default") == "default"
