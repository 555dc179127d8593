# src/evdispatch/core/container.py
from __future__ import annotations

import importlib
import inspect
from typing import Any, Callable, Dict, Tuple

from evdispatch.core import log
from evdispatch.core.errors import UnresolvedIdentifierError

Factory = Callable[[], Any]


def _imp(path: str) -> Any:
    """Import `pkg.mod:attr` or `pkg.mod.attr`."""
    if ":" in path:
        module, _, attr = path.partition(":")
    else:
        module, _, attr = path.rpartition(".")
    if not module or not attr:
        raise UnresolvedIdentifierError(path, "not an import path")
    try:
        mod = importlib.import_module(module)
    except ImportError as e:
        raise UnresolvedIdentifierError(path, str(e)) from e
    try:
        return getattr(mod, attr)
    except AttributeError as e:
        raise UnresolvedIdentifierError(path, str(e)) from e


class Container:
    """Resolve-by-key service.

    Keys bound with bind() produce a fresh value per make(); singleton() and
    instance() always hand out the same object. With autoload=True, unknown
    keys are treated as import paths and classes found that way are
    instantiated without arguments.
    """

    def __init__(self, *, autoload: bool = False):
        self.autoload = autoload
        self._bindings: Dict[str, Tuple[Factory, bool]] = {}
        self._instances: Dict[str, Any] = {}
        self.l = log.get("evdispatch.container")

    def bind(self, key: str, factory: Factory) -> None:
        self.forget(key)
        self._bindings[key] = (factory, False)

    def singleton(self, key: str, factory: Factory) -> None:
        self.forget(key)
        self._bindings[key] = (factory, True)

    def instance(self, key: str, value: Any) -> None:
        self.forget(key)
        self._instances[key] = value

    def bound(self, key: str) -> bool:
        return key in self._instances or key in self._bindings

    def forget(self, key: str) -> None:
        self._instances.pop(key, None)
        self._bindings.pop(key, None)

    def make(self, identifier: str) -> Any:
        if identifier in self._instances:
            return self._instances[identifier]

        binding = self._bindings.get(identifier)
        if binding is not None:
            factory, shared = binding
            value = factory()
            if shared:
                self._instances[identifier] = value
            return value

        if not self.autoload:
            raise UnresolvedIdentifierError(identifier, "no binding")

        target = _imp(identifier)
        self.l.debug("autoloaded %s", identifier)
        return target() if inspect.isclass(target) else target
