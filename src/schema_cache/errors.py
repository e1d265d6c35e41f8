"""Schema cache error taxonomy and helpers."""

from __future__ import annotations


class SchemaCacheError(RuntimeError):
    """Stable error surfaced as a reason code."""

    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        message = f"{code}:{detail}" if detail else code
        super().__init__(message)


class SchemaCompilationError(SchemaCacheError):
    """Raised by a compiler when a schema definition is invalid for its dialect."""


class SettingsError(SchemaCacheError):
    """Raised when validator settings are invalid."""


def reason_code(exc: BaseException) -> str:
    if isinstance(exc, SchemaCacheError):
        return exc.code
    return "INTERNAL_ERROR"
