from __future__ import annotations

from typing import Any

import pytest

from schema_cache.contracts import Dialect, ErrorDetail, ValidationOutcome
from schema_cache.errors import SchemaCompilationError
from schema_cache.registry import CompilerRegistry, reset_default_registry


class StubCompiled:
    def __init__(self, schema: Any, dialect: Dialect) -> None:
        self.schema = schema
        self.dialect = dialect
        self.calls = 0

    def __call__(self, value: Any) -> ValidationOutcome:
        self.calls += 1
        required = self.schema.get("required", [])
        missing = [name for name in required if not isinstance(value, dict) or name not in value]
        if not missing:
            return ValidationOutcome.ok()
        return ValidationOutcome.failed(
            ErrorDetail(
                keyword="required",
                params={"missingProperty": name},
                instance_path="",
                schema_path="#/required",
            )
            for name in missing
        )


class StubCompiler:
    """Counts compile calls; schemas flagged ``broken`` fail until ``repaired``."""

    instances: list["StubCompiler"] = []

    def __init__(self, settings: Any = None, dialect: Dialect = Dialect.JTD) -> None:
        self.settings = settings
        self.dialect = dialect
        self.compile_calls = 0
        self.repaired = False
        StubCompiler.instances.append(self)

    def compile(self, schema: Any) -> StubCompiled:
        self.compile_calls += 1
        if schema.get("broken") and not self.repaired:
            raise SchemaCompilationError("SCHEMA_INVALID", "broken schema")
        return StubCompiled(schema, self.dialect)


def stub_factories() -> dict[Dialect, Any]:
    return {
        Dialect.JTD: lambda settings: StubCompiler(settings, Dialect.JTD),
        Dialect.JSON_SCHEMA: lambda settings: StubCompiler(settings, Dialect.JSON_SCHEMA),
    }


@pytest.fixture(autouse=True)
def _isolated_default_registry(monkeypatch):
    monkeypatch.delenv("SCHEMA_CACHE_SETTINGS", raising=False)
    reset_default_registry()
    StubCompiler.instances.clear()
    yield
    reset_default_registry()


@pytest.fixture
def stub_registry() -> CompilerRegistry:
    return CompilerRegistry(factories=stub_factories())


@pytest.fixture
def stub_compilers() -> list[StubCompiler]:
    return StubCompiler.instances
