from __future__ import annotations

import inspect
import logging
import threading
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._errors import DuplicateRegistrationError, NotInstantiableError, UnsatisfiedDependencyError
from ._invoker import Invocation, Invoker
from ._reflect import (
    declares_constructor,
    find_class,
    is_deferred_factory,
    is_instantiable,
    materialize_call,
    reflect_parameters,
    type_key,
)


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from ._reflect import Parameter, Token

T = TypeVar("T")


logger = logging.getLogger(__name__)

_MISSING = object()


class Registry:
    """Dependency registry matching parameters by declared type, then by name.

    Every provided value is stored under its name. Concrete instances are also
    stored under their own class, so a parameter annotated with that class
    receives them whatever the parameter is called.

    Provided functions are factories: they are called with no arguments each
    time a parameter is resolved to them. Objects defining `__call__` are
    passed through as they are.
    """

    def __init__(self, namespaces: Iterable[str] = ()) -> None:
        self._namecache: dict[str, object] = {}
        self._classcache: dict[str, object] = {}
        self._instances: dict[str, object] = {}
        self._namespaces = tuple(namespaces)
        self._invoker = Invoker()
        self._lock = threading.RLock()

    @property
    def namespaces(self) -> tuple[str, ...]:
        return self._namespaces

    def provide(self, name: str, value: object) -> None:
        """Provide a dependency under `name`, and under its class for concrete instances.

        Example:
          registry.provide("db", Database())
          registry.provide("clock", lambda: datetime.now(tz=UTC))

        """
        class_key = _class_slot(value)

        with self._lock:
            if name in self._namecache:
                raise DuplicateRegistrationError("name", name)
            if class_key is not None and class_key in self._classcache:
                raise DuplicateRegistrationError("class", class_key)

            self._namecache[name] = value
            if class_key is not None:
                self._classcache[class_key] = value
            self._invoker.clear()

        logger.debug("Provided %s (class slot: %s)", name, class_key)

    def retrieve(self, key: Token, default: Any = None) -> Any:
        """Fetch a provided dependency by class or name, or `default` when unknown."""
        key = type_key(key)
        with self._lock:
            # class slots first
            if key in self._classcache:
                return self._classcache[key]
            return self._namecache.get(key, default)

    def has(self, key: Token) -> bool:
        key = type_key(key)
        with self._lock:
            return key in self._classcache or key in self._namecache

    def remove(self, name: str) -> object | None:
        """Remove the dependency provided under `name` and its class slot; return it."""
        with self._lock:
            value = self._namecache.pop(name, None)
            class_key = _class_slot(value)
            if class_key is not None and self._classcache.get(class_key) is value:
                del self._classcache[class_key]
            self._invoker.clear()

        return value

    def delegate(self, name: str, factory: Callable[[], object]) -> object | None:
        """Swap the dependency under `name` for the value `factory()` returns.

        The old value is removed from both its name and class slots first, so
        the replacement may share its class. A `None` replacement leaves the
        name unregistered. If `factory` or the new registration fails, the old
        value is put back. Returns the replaced value.
        """
        with self._lock:
            existed = name in self._namecache
            previous = self.remove(name)
            try:
                replacement = factory()
                if replacement is not None:
                    self.provide(name, replacement)
            except Exception:
                if existed:
                    self._restore(name, previous)
                raise

        logger.debug("Delegated %s", name)
        return previous

    def _restore(self, name: str, value: object) -> None:
        self._namecache[name] = value
        class_key = _class_slot(value)
        if class_key is not None and class_key not in self._classcache:
            self._classcache[class_key] = value
        self._invoker.clear()

    def inject(self, fn: Callable[..., Any] | tuple[object, str]) -> Invocation:
        """Resolve the parameters of `fn` and return a zero-argument invocation."""
        with self._lock:
            return self._invoker.wrap(fn, self._resolve_arguments)

    @overload
    def create(self, name: type[T], namespaces: Iterable[str] = ...) -> T: ...

    @overload
    def create(self, name: str, namespaces: Iterable[str] = ...) -> object: ...

    def create(self, name: Token, namespaces: Iterable[str] = ()) -> object:
        """Create a new instance of a class, injecting its constructor.

        `name` is a class, a dotted class path, or a class name looked up in
        `namespaces` and then in the registry's own namespaces.
        """
        cls = self._find_class(name, namespaces)
        if not is_instantiable(cls):
            raise NotInstantiableError(type_key(cls))

        with self._lock:
            if not declares_constructor(cls):
                return cls()

            parameters = reflect_parameters(cls)
            args, kwargs = materialize_call(parameters, self._resolve_arguments(parameters))
            return cls(*args, **kwargs)

    @overload
    def instance(self, name: type[T], namespaces: Iterable[str] = ...) -> T: ...

    @overload
    def instance(self, name: str, namespaces: Iterable[str] = ...) -> object: ...

    def instance(self, name: Token, namespaces: Iterable[str] = ()) -> object:
        """Return the singleton instance of a class, creating it on first use."""
        cls = self._find_class(name, namespaces)
        key = type_key(cls)

        with self._lock:
            if key not in self._instances:
                self._instances[key] = self.create(cls)
                logger.debug("Created singleton %s", key)
            return self._instances[key]

    def _find_class(self, name: Token, namespaces: Iterable[str]) -> type:
        if inspect.isclass(name):
            return name
        return find_class(type_key(name), [*namespaces, *self._namespaces])

    def _resolve_arguments(self, parameters: Sequence[Parameter]) -> dict[str, Any]:
        values: dict[str, Any] = {}

        for p in parameters:
            if p.is_variadic:
                continue

            # by declared type first, then by parameter name
            dependency = _MISSING
            if p.annotation is not None:
                dependency = self.retrieve(p.annotation, _MISSING)
            if dependency is _MISSING:
                dependency = self.retrieve(p.name, _MISSING)

            if dependency is _MISSING:
                if not p.has_default:
                    raise UnsatisfiedDependencyError(p.name)
                dependency = p.default
            elif is_deferred_factory(dependency):
                dependency = dependency()

            values[p.name] = dependency

        return values


def _class_slot(value: object) -> str | None:
    """Class key a provided value also occupies, if any.

    Factories, classes and builtin values (ints, strings, dicts, ...) only
    occupy their name.
    """
    if value is None or is_deferred_factory(value) or inspect.isclass(value):
        return None
    if type(value).__module__ == "builtins":
        return None
    return type_key(type(value))
