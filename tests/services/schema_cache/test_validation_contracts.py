from __future__ import annotations

import pytest

from schema_cache.contracts import (
    COMPILATION_FAILURE,
    ErrorDetail,
    Invalid,
    Valid,
    ValidationOutcome,
)
from schema_cache.compilers import json_pointer
from schema_cache.errors import SchemaCompilationError, SettingsError, reason_code


def test_outcome_requires_errors_exactly_when_invalid() -> None:
    with pytest.raises(ValueError):
        ValidationOutcome(valid=True, errors=(ErrorDetail(keyword="type"),))
    with pytest.raises(ValueError):
        ValidationOutcome(valid=False, errors=())
    assert ValidationOutcome.ok().errors == ()
    failed = ValidationOutcome.failed(iter([ErrorDetail(keyword="type")]))
    assert failed.errors == (ErrorDetail(keyword="type"),)


def test_compilation_failure_detail_wire_shape() -> None:
    error = SchemaCompilationError("SCHEMA_INVALID", "bad type")
    detail = ErrorDetail.compilation_failure(error)
    assert detail.as_dict() == {
        "keyword": COMPILATION_FAILURE,
        "params": {"error": error},
        "instancePath": "",
        "schemaPath": "",
        "message": "SCHEMA_INVALID:bad type",
    }
    outcome = ValidationOutcome.failed([detail])
    assert outcome.compilation_failed
    assert outcome.as_dict()["valid"] is False


def test_bind_produces_tagged_results() -> None:
    value = {"id": 1}
    assert ValidationOutcome.ok().bind(value) == Valid(value)
    detail = ErrorDetail(keyword="required", params={"missingProperty": "id"})
    assert ValidationOutcome.failed([detail]).bind({}) == Invalid((detail,))


def test_json_pointer_escapes_tokens() -> None:
    assert json_pointer([]) == ""
    assert json_pointer(["a/b", "m~n", 0]) == "/a~1b/m~0n/0"


def test_reason_code_prefers_stable_codes() -> None:
    assert reason_code(SchemaCompilationError("SCHEMA_REF_UNRESOLVABLE", "x")) == "SCHEMA_REF_UNRESOLVABLE"
    assert reason_code(SettingsError("SETTINGS_UNKNOWN_KEY", "x")) == "SETTINGS_UNKNOWN_KEY"
    assert reason_code(KeyError("engine bug")) == "INTERNAL_ERROR"


def test_compilation_failure_message_falls_back_to_exception_name() -> None:
    detail = ErrorDetail.compilation_failure(KeyError())
    assert detail.message == "KeyError"
    assert ErrorDetail.compilation_failure(ValueError("bad")).message == "bad"
