from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class FailureCode(str, Enum):
    TIMEOUT = "timeout"
    DB_ERROR = "db_error"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    UNKNOWN = "unknown"


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: Union[FailureCode, str] = FailureCode.UNKNOWN) -> "Result[T]":
        code_value = code.value if isinstance(code, FailureCode) else code
        return Result(ok=False, error=error, error_code=code_value)

    @property
    def timed_out(self) -> bool:
        return not self.ok and self.error_code == FailureCode.TIMEOUT.value

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default
