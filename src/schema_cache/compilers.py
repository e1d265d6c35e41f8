"""Compiler adapters for the JTD and JSON Schema dialects.

Each adapter turns a schema definition into a compiled validator, a callable
returning a ``ValidationOutcome``. A malformed definition raises
``SchemaCompilationError`` from ``compile``; compiled validators report
mismatches through the outcome and do not raise for them.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import islice
import logging
from typing import Any, Callable, Iterable, Iterator, Mapping, Protocol
from urllib.parse import urljoin

import jtd
from jsonschema import Draft201909Validator
from jsonschema.exceptions import SchemaError, ValidationError
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT201909

from .config import ValidatorSettings
from .contracts import Dialect, ErrorDetail, ValidationOutcome
from .errors import SchemaCompilationError


logger = logging.getLogger("schema_cache.compilers")


class CompiledValidator(Protocol):
    dialect: Dialect
    schema: Any

    def __call__(self, value: Any) -> ValidationOutcome: ...


class Compiler(Protocol):
    def compile(self, schema: Any) -> CompiledValidator: ...


def json_pointer(tokens: Iterable[Any]) -> str:
    return "".join("/" + str(token).replace("~", "~0").replace("/", "~1") for token in tokens)


# JSON Type Definition (RFC 8927)

JTD_KEYWORDS = frozenset(
    {
        "metadata",
        "nullable",
        "definitions",
        "ref",
        "type",
        "enum",
        "elements",
        "properties",
        "optionalProperties",
        "additionalProperties",
        "values",
        "discriminator",
        "mapping",
    }
)
_JTD_SCHEMA_SLOTS = ("elements", "values")
_JTD_SCHEMA_MAPS = ("definitions", "properties", "optionalProperties", "mapping")


@dataclass
class JtdCompiledValidator:
    schema: Mapping[str, Any]
    engine_schema: jtd.Schema
    options: jtd.ValidationOptions
    dialect: Dialect = Dialect.JTD

    def __call__(self, value: Any) -> ValidationOutcome:
        errors = jtd.validate(schema=self.engine_schema, instance=value, options=self.options)
        if not errors:
            return ValidationOutcome.ok()
        return ValidationOutcome.failed(self._detail(item, value) for item in errors)

    def _detail(self, error: Any, value: Any) -> ErrorDetail:
        instance_tokens = list(error.instance_path)
        schema_tokens = list(error.schema_path)
        instance_path = json_pointer(instance_tokens)
        schema_path = json_pointer(schema_tokens)
        keyword, trailing_name = _jtd_keyword(schema_tokens)
        if trailing_name is None and keyword is not None:
            return ErrorDetail(
                keyword=keyword,
                params={keyword: _lookup(self.schema, schema_tokens)},
                instance_path=instance_path,
                schema_path=schema_path,
            )
        if keyword == "properties" and self._is_missing(trailing_name, instance_tokens, schema_tokens, value):
            return ErrorDetail(
                keyword="properties",
                params={"missingProperty": trailing_name},
                instance_path=instance_path,
                schema_path=schema_path,
            )
        return ErrorDetail(
            keyword="additionalProperties",
            params={"additionalProperty": instance_tokens[-1] if instance_tokens else None},
            instance_path=instance_path,
            schema_path=schema_path,
        )

    def _is_missing(
        self,
        name: str | None,
        instance_tokens: list[str],
        schema_tokens: list[str],
        value: Any,
    ) -> bool:
        """Tell a missing required member from an undeclared one.

        A missing member is reported at the object holding it, one instance
        level above the property schema; an undeclared member is reported at
        the member itself, one level below the form that rejected it.
        """
        depth = _jtd_instance_depth(schema_tokens)
        if depth is not None:
            return len(instance_tokens) == depth - 1
        if instance_tokens:
            parent = _lookup(value, instance_tokens[:-1])
            member = instance_tokens[-1]
            form = _lookup(self.schema, schema_tokens)
            if isinstance(parent, Mapping) and member in parent and isinstance(form, Mapping):
                declared = set(form.get("properties") or {}) | set(form.get("optionalProperties") or {})
                if "properties" in form or "optionalProperties" in form:
                    if member not in declared:
                        return False
        target = _lookup(value, instance_tokens)
        return isinstance(target, Mapping) and name not in target


class JtdCompiler:
    def __init__(self, settings: ValidatorSettings | None = None) -> None:
        self.settings = settings or ValidatorSettings()
        self._options = jtd.ValidationOptions(
            max_depth=self.settings.jtd_max_depth,
            max_errors=self.settings.max_errors,
        )

    def compile(self, schema: Any) -> JtdCompiledValidator:
        if not isinstance(schema, Mapping):
            raise SchemaCompilationError("SCHEMA_NOT_MAPPING", type(schema).__name__)
        unknown = list(_jtd_unknown_keywords(schema, []))
        if unknown:
            raise SchemaCompilationError("SCHEMA_UNKNOWN_KEYWORD", "; ".join(unknown))
        try:
            engine_schema = jtd.Schema.from_dict(dict(schema))
            engine_schema.validate()
        except Exception as exc:
            raise SchemaCompilationError("SCHEMA_INVALID", str(exc) or type(exc).__name__) from exc
        logger.debug("Compiled JTD schema keywords=%s", sorted(schema))
        return JtdCompiledValidator(schema=schema, engine_schema=engine_schema, options=self._options)


def _jtd_unknown_keywords(schema: Mapping[str, Any], path: list[str]) -> Iterator[str]:
    for key in schema:
        if key not in JTD_KEYWORDS:
            yield f"'{key}' at {json_pointer(path) or '/'}"
    for key in _JTD_SCHEMA_SLOTS:
        child = schema.get(key)
        if isinstance(child, Mapping):
            yield from _jtd_unknown_keywords(child, path + [key])
    for key in _JTD_SCHEMA_MAPS:
        children = schema.get(key)
        if not isinstance(children, Mapping):
            continue
        for name, child in children.items():
            if isinstance(child, Mapping):
                yield from _jtd_unknown_keywords(child, path + [key, str(name)])


def _jtd_keyword(tokens: list[str]) -> tuple[str | None, str | None]:
    """Return the last keyword of a JTD schema path and the name following it, if any."""
    keyword: str | None = None
    name: str | None = None
    index = 0
    while index < len(tokens):
        keyword = tokens[index]
        name = None
        if keyword in _JTD_SCHEMA_MAPS and index + 1 < len(tokens):
            name = tokens[index + 1]
            index += 2
        else:
            index += 1
    return keyword, name


def _jtd_instance_depth(tokens: list[str]) -> int | None:
    """Instance levels traversed by a JTD schema path; None once a ref was followed."""
    if tokens and tokens[0] == "definitions":
        return None
    depth = 0
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token in ("properties", "optionalProperties") and index + 1 < len(tokens):
            depth += 1
            index += 2
        elif token == "mapping" and index + 1 < len(tokens):
            index += 2
        elif token in _JTD_SCHEMA_SLOTS:
            depth += 1
            index += 1
        else:
            index += 1
    return depth


def _lookup(node: Any, tokens: list[Any]) -> Any:
    for token in tokens:
        if isinstance(node, Mapping):
            node = node.get(token)
        elif isinstance(node, list):
            try:
                node = node[int(token)]
            except (ValueError, IndexError):
                return None
        else:
            return None
    return node


# JSON Schema draft 2019-09

# Keywords handled outside Draft201909Validator.VALIDATORS or carrying annotations only.
JSON_SCHEMA_ANNOTATIONS = frozenset(
    {
        "then",
        "else",
        "minContains",
        "maxContains",
        "$schema",
        "$id",
        "$anchor",
        "$recursiveAnchor",
        "$vocabulary",
        "$comment",
        "$defs",
        "definitions",
        "title",
        "description",
        "default",
        "examples",
        "deprecated",
        "readOnly",
        "writeOnly",
        "contentMediaType",
        "contentEncoding",
        "contentSchema",
        "format",
    }
)
_JSON_SCHEMA_SLOTS = (
    "additionalItems",
    "unevaluatedItems",
    "contains",
    "additionalProperties",
    "unevaluatedProperties",
    "propertyNames",
    "not",
    "if",
    "then",
    "else",
    "contentSchema",
)
_JSON_SCHEMA_MAPS = ("properties", "patternProperties", "$defs", "definitions", "dependentSchemas")
_JSON_SCHEMA_LISTS = ("allOf", "anyOf", "oneOf")


@dataclass
class JsonSchemaCompiledValidator:
    schema: Any
    validator: Draft201909Validator
    max_errors: int = 0
    dialect: Dialect = Dialect.JSON_SCHEMA

    def __call__(self, value: Any) -> ValidationOutcome:
        errors: Iterator[ValidationError] = self.validator.iter_errors(value)
        if self.max_errors:
            errors = islice(errors, self.max_errors)
        details = [_json_schema_detail(error) for error in errors]
        if not details:
            return ValidationOutcome.ok()
        return ValidationOutcome.failed(details)


class JsonSchemaCompiler:
    def __init__(
        self,
        settings: ValidatorSettings | None = None,
        resources: Registry | None = None,
    ) -> None:
        self.settings = settings or ValidatorSettings()
        self._resources: Registry = resources if resources is not None else Registry()

    def add_resource(self, uri: str, schema: Any) -> None:
        """Make ``schema`` available to ``$ref`` lookups under ``uri``."""
        resource = Resource.from_contents(schema, default_specification=DRAFT201909)
        self._resources = self._resources.with_resource(uri, resource)
        logger.debug("Registered JSON Schema resource uri=%s", uri)

    def compile(self, schema: Any) -> JsonSchemaCompiledValidator:
        if not isinstance(schema, (Mapping, bool)):
            raise SchemaCompilationError("SCHEMA_NOT_MAPPING", type(schema).__name__)
        try:
            Draft201909Validator.check_schema(schema)
        except SchemaError as exc:
            path = json_pointer(exc.absolute_path) or "/"
            raise SchemaCompilationError("SCHEMA_INVALID", f"{path}: {exc.message}") from exc
        registry = self._resources
        if isinstance(schema, Mapping):
            if self.settings.strict_keywords:
                unknown = list(_json_schema_unknown_keywords(schema, []))
                if unknown:
                    raise SchemaCompilationError("SCHEMA_UNKNOWN_KEYWORD", "; ".join(unknown))
            registry = self._resolve_refs(schema)
        format_checker = Draft201909Validator.FORMAT_CHECKER if self.settings.assert_formats else None
        validator = Draft201909Validator(schema, registry=registry, format_checker=format_checker)
        logger.debug("Compiled JSON Schema id=%s", schema.get("$id") if isinstance(schema, Mapping) else None)
        return JsonSchemaCompiledValidator(
            schema=schema,
            validator=validator,
            max_errors=self.settings.max_errors,
        )

    def _resolve_refs(self, schema: Mapping[str, Any]) -> Registry:
        try:
            resource = Resource.from_contents(schema, default_specification=DRAFT201909)
            base_uri = resource.id() or ""
            registry = self._resources.with_resource(base_uri, resource).crawl()
            for scope, ref in _json_schema_refs(schema, base_uri):
                registry.resolver(base_uri=scope).lookup(ref)
        except Unresolvable as exc:
            raise SchemaCompilationError("SCHEMA_REF_UNRESOLVABLE", str(exc)) from exc
        except Exception as exc:
            raise SchemaCompilationError("SCHEMA_INVALID", str(exc) or type(exc).__name__) from exc
        return registry


def _json_schema_subschemas(schema: Mapping[str, Any]) -> Iterator[tuple[list[str], Any]]:
    for key in _JSON_SCHEMA_SLOTS:
        if key in schema:
            yield [key], schema[key]
    items = schema.get("items")
    if isinstance(items, list):
        for index, child in enumerate(items):
            yield ["items", str(index)], child
    elif items is not None:
        yield ["items"], items
    for key in _JSON_SCHEMA_MAPS:
        children = schema.get(key)
        if isinstance(children, Mapping):
            for name, child in children.items():
                yield [key, str(name)], child
    for key in _JSON_SCHEMA_LISTS:
        children = schema.get(key)
        if isinstance(children, list):
            for index, child in enumerate(children):
                yield [key, str(index)], child


def _json_schema_unknown_keywords(schema: Mapping[str, Any], path: list[str]) -> Iterator[str]:
    for key in schema:
        if key not in Draft201909Validator.VALIDATORS and key not in JSON_SCHEMA_ANNOTATIONS:
            yield f"'{key}' at #{json_pointer(path)}"
    for suffix, child in _json_schema_subschemas(schema):
        if isinstance(child, Mapping):
            yield from _json_schema_unknown_keywords(child, path + suffix)


def _json_schema_refs(schema: Mapping[str, Any], base_uri: str) -> Iterator[tuple[str, str]]:
    scope = base_uri
    schema_id = schema.get("$id")
    if isinstance(schema_id, str):
        scope = urljoin(base_uri, schema_id)
    ref = schema.get("$ref")
    if isinstance(ref, str):
        yield scope, ref
    for _, child in _json_schema_subschemas(schema):
        if isinstance(child, Mapping):
            yield from _json_schema_refs(child, scope)


def _json_schema_detail(error: ValidationError) -> ErrorDetail:
    keyword = "false schema" if error.validator is None else str(error.validator)
    return ErrorDetail(
        keyword=keyword,
        params={keyword: error.validator_value},
        instance_path=json_pointer(error.absolute_path),
        schema_path="#" + json_pointer(error.absolute_schema_path),
        message=error.message,
    )


DEFAULT_FACTORIES: dict[Dialect, Callable[[ValidatorSettings], Compiler]] = {
    Dialect.JTD: JtdCompiler,
    Dialect.JSON_SCHEMA: JsonSchemaCompiler,
}
