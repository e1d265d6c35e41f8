"""Lazily compiled validator wrappers.

A wrapper is cheap to build: it keeps the schema definition and compiles it
through the shared ``CompilerRegistry`` on first call. A compiled validator is
kept for the wrapper's lifetime. A compile fault is not kept, so the next call
compiles again.

Calling a wrapper never raises. Compile faults and value mismatches are both
reported as ``False`` plus ``wrapper.errors``; a compile fault is the single
entry whose keyword is ``COMPILATION_FAILURE``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Generic, TypeGuard, TypeVar

from .compilers import CompiledValidator
from .contracts import CheckResult, Dialect, ErrorDetail, ValidationOutcome
from .errors import reason_code
from .registry import CompilerRegistry, default_registry


logger = logging.getLogger("schema_cache.validators")

T = TypeVar("T")


class ValidatorWrapper(Generic[T]):
    def __init__(
        self,
        dialect: Dialect | str,
        schema: Any,
        *,
        registry: CompilerRegistry | None = None,
    ) -> None:
        self._dialect = Dialect(dialect)
        self._schema = schema
        self._registry = registry
        self._compiled: CompiledValidator | None = None
        self._compile_lock = threading.Lock()
        self.last_outcome: ValidationOutcome | None = None

    @property
    def schema(self) -> Any:
        return self._schema

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def errors(self) -> tuple[ErrorDetail, ...]:
        if self.last_outcome is None:
            return ()
        return self.last_outcome.errors

    @property
    def is_compiled(self) -> bool:
        return self._compiled is not None

    def __call__(self, value: Any) -> TypeGuard[T]:
        return self.check(value).valid

    def check(self, value: Any) -> ValidationOutcome:
        try:
            compiled = self._ensure_compiled()
            outcome = compiled(value)
        except Exception as exc:
            self._report_failure(exc)
            outcome = ValidationOutcome.failed([ErrorDetail.compilation_failure(exc)])
        self.last_outcome = outcome
        return outcome

    def result(self, value: T) -> CheckResult[T]:
        return self.check(value).bind(value)

    def _ensure_compiled(self) -> CompiledValidator:
        compiled = self._compiled
        if compiled is not None:
            return compiled
        with self._compile_lock:
            if self._compiled is None:
                compiler = self._resolve_registry().get_compiler(self._dialect)
                self._compiled = compiler.compile(self._schema)
            return self._compiled

    def _resolve_registry(self) -> CompilerRegistry:
        if self._registry is None:
            self._registry = default_registry()
        return self._registry

    def _report_failure(self, exc: Exception) -> None:
        registry = self._registry
        if registry is not None and not registry.settings.log_compile_failures:
            return
        logger.warning(
            "Schema validator failure dialect=%s code=%s: %s",
            self._dialect.value,
            reason_code(exc),
            exc,
        )

    def __repr__(self) -> str:
        state = "compiled" if self.is_compiled else "uncompiled"
        return f"<ValidatorWrapper dialect={self._dialect.value} {state}>"


def validator_for(
    dialect: Dialect | str,
    definition: Any,
    *,
    registry: CompilerRegistry | None = None,
) -> ValidatorWrapper[Any]:
    return ValidatorWrapper(dialect, definition, registry=registry)


def jtd_validator_for(definition: Any, *, registry: CompilerRegistry | None = None) -> ValidatorWrapper[Any]:
    """Return a lazily compiled JTD validator."""
    return ValidatorWrapper(Dialect.JTD, definition, registry=registry)


def json_schema_validator_for(
    definition: Any,
    *,
    registry: CompilerRegistry | None = None,
) -> ValidatorWrapper[Any]:
    """Return a lazily compiled JSON Schema (draft 2019-09) validator."""
    return ValidatorWrapper(Dialect.JSON_SCHEMA, definition, registry=registry)
