from __future__ import annotations

import functools
import hashlib
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ._errors import AmbiguousCallableError
from ._reflect import materialize_call, reflect_parameters


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ._reflect import Parameter

    ArgumentResolver = Callable[[Sequence[Parameter]], dict[str, Any]]


logger = logging.getLogger(__name__)


class Shape(Enum):
    FUNCTION = "function"
    METHOD = "method"
    INVOKABLE = "invokable"


@dataclass(frozen=True, eq=False)
class Invocation:
    """A zero-argument call of `target` with arguments resolved ahead of time."""

    target: Callable[..., Any]
    shape: Shape
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)

    def __call__(self) -> Any:
        return self.target(*self.args, **self.kwargs)


def classify(target: object) -> tuple[Shape, Callable[..., Any]]:
    """Decide how `target` is invoked.

    Accepts bound methods, `(obj, "method_name")` pairs, plain functions
    (including builtins and partials) and instances defining `__call__`.
    Classes are rejected; construct them through the container instead.
    """
    if isinstance(target, tuple):
        if len(target) == 2 and isinstance(target[1], str) and not inspect.isclass(target[0]):
            method = getattr(target[0], target[1], None)
            if callable(method):
                return Shape.METHOD, method
        raise AmbiguousCallableError(target)

    if inspect.ismethod(target):
        return Shape.METHOD, target

    if inspect.isfunction(target) or inspect.isbuiltin(target) or isinstance(target, functools.partial):
        return Shape.FUNCTION, target

    if callable(target) and not inspect.isclass(target):
        return Shape.INVOKABLE, target

    raise AmbiguousCallableError(target)


def fingerprint(shape: Shape, fn: Callable[..., Any]) -> str:
    """Stable cache key for a classified callable.

    Bound methods, builtin ones included, are keyed on their instance, so a
    fresh bound method object for the same instance and function maps to the
    same key.
    """
    owner = getattr(fn, "__self__", None)
    if owner is None or inspect.ismodule(owner):
        owner = fn
    name = getattr(fn, "__qualname__", type(fn).__qualname__)
    try:
        signature = str(inspect.signature(fn))
    except (TypeError, ValueError):
        signature = "(...)"

    digest = hashlib.sha1(f"{shape.value}:{name}{signature}".encode(), usedforsecurity=False).hexdigest()
    return f"{digest}:{id(owner):x}"


class Invoker:
    """Wraps callables into invocations and caches them.

    Cached invocations hold a reference to their target, which keeps the
    identity part of the fingerprint valid for the lifetime of the cache.
    """

    def __init__(self) -> None:
        self._cache: dict[str, Invocation] = {}

    def wrap(self, target: object, resolve: ArgumentResolver) -> Invocation:
        shape, fn = classify(target)
        key = fingerprint(shape, fn)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Function cache hit for %r", fn)
            return cached

        parameters = reflect_parameters(fn)
        args, kwargs = materialize_call(parameters, resolve(parameters))

        invocation = Invocation(target=fn, shape=shape, args=tuple(args), kwargs=kwargs)
        self._cache[key] = invocation
        return invocation

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
