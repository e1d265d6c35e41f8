"""Value types shared by compilers and validator wrappers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Iterable, Mapping, TypeVar, Union


COMPILATION_FAILURE = "COMPILATION FAILURE"

T = TypeVar("T")


class Dialect(str, Enum):
    JTD = "jtd"
    JSON_SCHEMA = "json_schema"


@dataclass(frozen=True)
class ErrorDetail:
    keyword: str
    params: Mapping[str, Any] = field(default_factory=dict)
    instance_path: str = ""
    schema_path: str = ""
    message: str | None = None

    @classmethod
    def compilation_failure(cls, error: BaseException) -> "ErrorDetail":
        return cls(
            keyword=COMPILATION_FAILURE,
            params={"error": error},
            instance_path="",
            schema_path="",
            message=str(error) or type(error).__name__,
        )

    @property
    def is_compilation_failure(self) -> bool:
        return self.keyword == COMPILATION_FAILURE

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "keyword": self.keyword,
            "params": dict(self.params),
            "instancePath": self.instance_path,
            "schemaPath": self.schema_path,
        }
        if self.message is not None:
            payload["message"] = self.message
        return payload


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T


@dataclass(frozen=True)
class Invalid:
    errors: tuple[ErrorDetail, ...]


CheckResult = Union[Valid[T], Invalid]


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of checking one value; ``errors`` is empty exactly when ``valid``."""

    valid: bool
    errors: tuple[ErrorDetail, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "errors", tuple(self.errors))
        if self.valid and self.errors:
            raise ValueError("valid outcome must not carry errors")
        if not self.valid and not self.errors:
            raise ValueError("invalid outcome requires at least one error")

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(valid=True, errors=())

    @classmethod
    def failed(cls, errors: Iterable[ErrorDetail]) -> "ValidationOutcome":
        return cls(valid=False, errors=tuple(errors))

    @property
    def compilation_failed(self) -> bool:
        return any(item.is_compilation_failure for item in self.errors)

    def bind(self, value: T) -> CheckResult[T]:
        if self.valid:
            return Valid(value)
        return Invalid(self.errors)

    def as_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": [item.as_dict() for item in self.errors]}
