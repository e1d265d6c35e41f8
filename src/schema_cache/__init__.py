"""Lazily compiled, shared schema validators (JTD and JSON Schema)."""

from .config import ValidatorSettings
from .contracts import COMPILATION_FAILURE, Dialect, ErrorDetail, Invalid, Valid, ValidationOutcome
from .errors import SchemaCacheError, SchemaCompilationError, SettingsError
from .registry import CompilerRegistry, default_registry
from .validators import ValidatorWrapper, json_schema_validator_for, jtd_validator_for, validator_for

__all__ = [
    "COMPILATION_FAILURE",
    "CompilerRegistry",
    "Dialect",
    "ErrorDetail",
    "Invalid",
    "SchemaCacheError",
    "SchemaCompilationError",
    "SettingsError",
    "Valid",
    "ValidationOutcome",
    "ValidatorSettings",
    "ValidatorWrapper",
    "default_registry",
    "json_schema_validator_for",
    "jtd_validator_for",
    "validator_for",
]
