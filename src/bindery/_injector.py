from __future__ import annotations

import contextlib
import inspect
import logging
import threading
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._errors import (
    CircularDependencyError,
    NotInstantiableError,
    ReferenceNotFoundError,
    UnsatisfiedDependencyError,
)
from ._invoker import Invocation, Invoker
from ._reflect import (
    declares_constructor,
    find_class,
    is_instantiable,
    materialize_call,
    reflect_parameters,
    type_key,
)


if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from ._reflect import Parameter, Token

T = TypeVar("T")


logger = logging.getLogger(__name__)


class Injector:
    """Dependency injector keyed strictly by class identity.

    - `bind` instances to classes (silently replacing earlier bindings)
    - `get` returns the bound instance or builds and memoizes one
    - `instantiate` always builds, with constructor injection
    - `annotate` wraps a callable into a zero-argument invocation
    - optional parent: lookups fall back to it, writes stay local.

    Every constructor or function parameter must be annotated with a class;
    there is no fallback on parameter names.
    """

    def __init__(self, parent: Injector | None = None) -> None:
        self._instances: dict[str, object] = {}
        self._parent = parent
        self._invoker = Invoker()
        self._constructing: list[str] = []
        self._atomic_depth = 0
        self._lock = threading.RLock()

    @property
    def parent(self) -> Injector | None:
        return self._parent

    def create_child(self) -> Injector:
        """Create an injector that overrides some of this injector's bindings but not others."""
        return Injector(parent=self)

    def bind(self, key: Token, instance: object) -> None:
        """Bind `instance` to `key` in this injector, replacing any earlier binding."""
        key = type_key(key)
        with self._lock:
            self._instances[key] = instance
        logger.debug("Bound %s", key)

    def has(self, key: Token) -> bool:
        key = type_key(key)
        with self._lock:
            if key in self._instances:
                return True
        return self._parent is not None and self._parent.has(key)

    def lookup(self, key: Token, default: Any = None) -> Any:
        """Return the instance bound to `key` here or in a parent, or `default`."""
        key = type_key(key)
        with self._lock:
            if key in self._instances:
                return self._instances[key]
        if self._parent is not None:
            return self._parent.lookup(key, default)
        return default

    @overload
    def get(self, key: type[T]) -> T: ...

    @overload
    def get(self, key: str) -> object: ...

    def get(self, key: Token) -> object:
        """Return the bound instance for `key`, building and binding one locally if needed.

        Any failure to build is reported as `ReferenceNotFoundError`, with the
        original error as its cause. Circular constructor graphs are not
        reclassified.
        """
        name = type_key(key)
        with self._lock:
            if self.has(name):
                return self.lookup(name)

            try:
                return self.instantiate(key)
            except CircularDependencyError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise ReferenceNotFoundError(name) from exc

    @overload
    def instantiate(self, key: type[T]) -> T: ...

    @overload
    def instantiate(self, key: str) -> object: ...

    def instantiate(self, key: Token) -> object:
        """Create an instance with its constructor dependencies injected.

        Always creates a new instance and memoizes it under `key`, so a later
        `get(key)` returns that same instance. String keys must be importable
        dotted class paths.
        """
        name = type_key(key)
        cls = key if inspect.isclass(key) else find_class(name)

        if not is_instantiable(cls):
            raise NotInstantiableError(name)

        with self._lock, self._atomic():
            if name in self._constructing:
                path = self._constructing[self._constructing.index(name) :]
                raise CircularDependencyError([*path, name])

            self._constructing.append(name)
            try:
                instance = self._construct(cls)
            finally:
                self._constructing.pop()

            self._instances[name] = instance

        logger.debug("Instantiated %s", name)
        return instance

    def annotate(self, fn: Callable[..., Any] | tuple[object, str]) -> Invocation:
        """Resolve the parameters of `fn` once and return a zero-argument invocation.

        Annotating the same callable again returns the cached invocation.
        """
        with self._lock, self._atomic():
            return self._invoker.wrap(fn, self._resolve_arguments)

    @contextlib.contextmanager
    def _atomic(self) -> Iterator[None]:
        """Drop every binding made inside the outermost block if it raises.

        Transitive dependencies are memoized as they are built; a failure
        further up the graph must not leave them bound.
        """
        if self._atomic_depth:
            self._atomic_depth += 1
            try:
                yield
            finally:
                self._atomic_depth -= 1
            return

        snapshot = dict(self._instances)
        self._atomic_depth = 1
        try:
            yield
        except Exception:
            self._instances.clear()
            self._instances.update(snapshot)
            raise
        finally:
            self._atomic_depth = 0

    def _construct(self, cls: type[T]) -> T:
        # shortcut: nothing declares a constructor, so there is nothing to inject
        if not declares_constructor(cls):
            return cls()

        parameters = reflect_parameters(cls)
        args, kwargs = materialize_call(parameters, self._resolve_arguments(parameters))
        return cls(*args, **kwargs)

    def _resolve_arguments(self, parameters: Sequence[Parameter]) -> dict[str, Any]:
        values: dict[str, Any] = {}

        for p in parameters:
            if p.is_variadic:
                continue

            if p.annotation is None:
                raise UnsatisfiedDependencyError(p.name)

            if self.has(p.annotation):
                values[p.name] = self.get(p.annotation)
            elif p.annotation.__module__ == "builtins":
                # int, str, ... are never built implicitly
                raise UnsatisfiedDependencyError(p.name)
            else:
                values[p.name] = self.instantiate(p.annotation)

        return values
