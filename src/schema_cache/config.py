"""Validator settings loader."""

from __future__ import annotations

from dataclasses import dataclass, fields
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import SettingsError


SETTINGS_ENV = "SCHEMA_CACHE_SETTINGS"
_ENV_PATTERN = re.compile(r"^\$\{([A-Z0-9_]+)\}$")


@dataclass(frozen=True)
class ValidatorSettings:
    strict_keywords: bool = True
    assert_formats: bool = False
    jtd_max_depth: int = 0
    max_errors: int = 0
    log_compile_failures: bool = True

    @classmethod
    def load(cls, path: Path) -> "ValidatorSettings":
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise SettingsError("SETTINGS_NOT_MAPPING", str(path))
        if "validators" in data:
            data = data["validators"] or {}
            if not isinstance(data, dict):
                raise SettingsError("SETTINGS_NOT_MAPPING", f"{path}:validators")
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ValidatorSettings":
        known = {item.name: item for item in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise SettingsError("SETTINGS_UNKNOWN_KEY", ",".join(str(key) for key in unknown))
        values: dict[str, Any] = {}
        for name, raw in data.items():
            value = _resolve_env(raw)
            if known[name].type in ("bool", bool):
                values[name] = _as_bool(name, value)
            else:
                values[name] = _as_limit(name, value)
        return cls(**values)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ValidatorSettings":
        env = os.environ if environ is None else environ
        path = str(env.get(SETTINGS_ENV) or "").strip()
        if not path:
            return cls()
        return cls.load(Path(path))

    def as_dict(self) -> dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


def _resolve_env(value: Any) -> Any:
    if value is None or not isinstance(value, str):
        return value
    match = _ENV_PATTERN.match(value.strip())
    if not match:
        return value
    return os.getenv(match.group(1))


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise SettingsError("SETTINGS_INVALID_BOOL", f"{name}={value!r}")


def _as_limit(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise SettingsError("SETTINGS_INVALID_INT", f"{name}={value!r}")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise SettingsError("SETTINGS_INVALID_INT", f"{name}={value!r}") from exc
    if number < 0:
        raise SettingsError("SETTINGS_INVALID_INT", f"{name} must be >= 0")
    return number
