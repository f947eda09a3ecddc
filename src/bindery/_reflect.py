from __future__ import annotations

import builtins
import functools
import importlib
import inspect
import logging
import typing
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, cast, get_type_hints

from ._errors import AmbiguousCallableError, ClassNotFoundError


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    Token = type | str


logger = logging.getLogger(__name__)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True)
class Parameter:
    """One parameter of a callable or constructor.

    `annotation` holds the declared class, or None when the parameter is
    unannotated or annotated with something that is not a class.
    """

    name: str
    annotation: type | None
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD  # noqa: SLF001
    default: Any = inspect.Parameter.empty

    @property
    def is_variadic(self) -> bool:
        return self.kind in _VARIADIC

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


def type_key(token: Token) -> str:
    """Return the dependency key for a class or a string token.

    Classes are keyed by their fully-qualified name; strings are used as is.
    """
    if isinstance(token, str):
        return token
    if inspect.isclass(token):
        return f"{token.__module__}.{token.__qualname__}"
    msg = f"Dependency keys must be classes or strings, got {token!r}"
    raise TypeError(msg)


def reflect_parameters(target: Callable[..., Any] | type) -> list[Parameter]:
    """Describe the parameters of a function, bound method, invokable object or class.

    For classes the constructor is described, without `self`.
    """
    try:
        sig = inspect.signature(target)
    except (TypeError, ValueError) as exc:
        raise AmbiguousCallableError(target) from exc

    hints = _get_type_hints(target)

    return [
        Parameter(
            name=name,
            annotation=_as_class(hints.get(name, p.annotation)),
            kind=p.kind,
            default=p.default,
        )
        for name, p in sig.parameters.items()
    ]


def materialize_call(
    parameters: Sequence[Parameter], values: Mapping[str, Any]
) -> tuple[list[Any], dict[str, Any]]:
    """Split resolved values into positional and keyword arguments.

    Variadic parameters and parameters without a value are left out.
    """
    args, kwargs = [], {}

    for p in parameters:
        if p.is_variadic or p.name not in values:
            continue
        if p.kind is inspect.Parameter.POSITIONAL_ONLY:
            args.append(values[p.name])
        else:
            kwargs[p.name] = values[p.name]

    return args, kwargs


def is_deferred_factory(value: object) -> bool:
    """Plain functions, lambdas, bound methods and partials are factories.

    Instances of classes defining `__call__` are not.
    """
    return (
        inspect.isfunction(value)
        or inspect.ismethod(value)
        or inspect.isbuiltin(value)
        or isinstance(value, functools.partial)
    )


def is_instantiable(cls: object) -> bool:
    return inspect.isclass(cls) and not inspect.isabstract(cls) and not _is_protocol(cls)


def declares_constructor(cls: type) -> bool:
    """Whether `cls` or any of its bases other than `object` defines `__init__`."""
    return any("__init__" in klass.__dict__ for klass in cls.__mro__ if klass is not object)


def find_class(name: str, namespaces: Iterable[str] = ()) -> type:
    """Find a class by dotted path, then by `<namespace>.<name>` for each namespace in order."""
    tried = [name, *(f"{namespace}.{name}" for namespace in namespaces)]

    for candidate in tried:
        cls = _import_class(candidate)
        if cls is not None:
            return cls

    raise ClassNotFoundError(name, tried)


def _import_class(path: str) -> type | None:
    parts = path.split(".")
    if len(parts) == 1:
        builtin = vars(builtins).get(path)
        return builtin if inspect.isclass(builtin) else None

    # Longest importable module prefix wins; the rest are attributes (nested classes).
    for i in range(len(parts) - 1, 0, -1):
        try:
            obj: object = importlib.import_module(".".join(parts[:i]))
        except ModuleNotFoundError:
            continue

        for attr in parts[i:]:
            obj = getattr(obj, attr, None)
            if obj is None:
                return None

        return cast("type", obj) if inspect.isclass(obj) else None

    return None


def _as_class(annotation: object) -> type | None:
    if annotation is inspect.Parameter.empty or not inspect.isclass(annotation):
        return None
    return annotation


def _get_type_hints(target: object) -> dict[str, Any]:
    if inspect.isclass(target):
        source = inspect.getattr_static(target, "__init__")
    elif is_deferred_factory(target):
        source = target
    else:
        source = type(target).__call__

    try:
        hints = get_type_hints(source)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %r type hints", exc.name, target)
        hints = {}

    return hints


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def _is_protocol(tp: type) -> bool:
        return typing.is_protocol(tp)

else:

    def _is_protocol(tp: type) -> bool:
        """Protocol classes themselves, not their nominal implementations."""
        return tp is not Protocol and bool(getattr(tp, "_is_protocol", False))
