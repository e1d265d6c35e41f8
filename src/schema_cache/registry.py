"""Process-wide compiler registry, one lazily created compiler per dialect."""

from __future__ import annotations

from collections import Counter
import logging
import threading
from typing import Callable, Mapping

from .compilers import DEFAULT_FACTORIES, Compiler
from .config import ValidatorSettings
from .contracts import Dialect


logger = logging.getLogger("schema_cache.registry")

CompilerFactory = Callable[[ValidatorSettings], Compiler]


class CompilerRegistry:
    """Holds at most one compiler per dialect, constructed on first request."""

    def __init__(
        self,
        settings: ValidatorSettings | None = None,
        factories: Mapping[Dialect, CompilerFactory] | None = None,
    ) -> None:
        self.settings = settings or ValidatorSettings()
        self._factories: dict[Dialect, CompilerFactory] = dict(DEFAULT_FACTORIES)
        for dialect, factory in (factories or {}).items():
            self._factories[Dialect(dialect)] = factory
        self._compilers: dict[Dialect, Compiler] = {}
        self._created: Counter[Dialect] = Counter()
        self._lock = threading.Lock()

    def get_compiler(self, dialect: Dialect | str) -> Compiler:
        key = Dialect(dialect)
        compiler = self._compilers.get(key)
        if compiler is not None:
            return compiler
        with self._lock:
            compiler = self._compilers.get(key)
            if compiler is None:
                compiler = self._factories[key](self.settings)
                self._compilers[key] = compiler
                self._created[key] += 1
                logger.debug("Created schema compiler dialect=%s type=%s", key.value, type(compiler).__name__)
        return compiler

    def is_initialized(self, dialect: Dialect | str) -> bool:
        return Dialect(dialect) in self._compilers

    def created_count(self, dialect: Dialect | str | None = None) -> int:
        if dialect is None:
            return sum(self._created.values())
        return self._created[Dialect(dialect)]


_DEFAULT_REGISTRY: CompilerRegistry | None = None
_DEFAULT_LOCK = threading.Lock()


def default_registry() -> CompilerRegistry:
    """Return the shared registry, creating it from the environment on first use."""
    global _DEFAULT_REGISTRY
    registry = _DEFAULT_REGISTRY
    if registry is not None:
        return registry
    with _DEFAULT_LOCK:
        if _DEFAULT_REGISTRY is None:
            _DEFAULT_REGISTRY = CompilerRegistry(ValidatorSettings.from_env())
        return _DEFAULT_REGISTRY


def reset_default_registry() -> None:
    """Drop the shared registry. Intended for test isolation."""
    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        _DEFAULT_REGISTRY = None
