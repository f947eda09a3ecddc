"""Small dependency injection library.

This package inspects the parameters of callables and constructors and
supplies them from explicitly registered dependencies, building missing ones
where it can.

Exports:
- `Injector`: keyed strictly by class identity. Builds and memoizes missing
  dependencies through constructor injection and can chain to a parent
  injector whose bindings it may override.
- `Registry`: keyed by name and by the class of each provided instance.
  Parameters match by declared type, then by name. Supports swapping a
  registration with `delegate` and looking classes up across namespaces.
- `Invocation`: the zero-argument callable returned by `Injector.annotate`
  and `Registry.inject`.
"""

from ._errors import (
    AmbiguousCallableError,
    CircularDependencyError,
    ClassNotFoundError,
    DuplicateRegistrationError,
    NotInstantiableError,
    ReferenceNotFoundError,
    ResolutionError,
    UnsatisfiedDependencyError,
)
from ._injector import Injector
from ._invoker import Invocation, Shape, classify
from ._reflect import Parameter, find_class, reflect_parameters, type_key
from ._registry import Registry


__all__ = [
    "AmbiguousCallableError",
    "CircularDependencyError",
    "ClassNotFoundError",
    "DuplicateRegistrationError",
    "Injector",
    "Invocation",
    "NotInstantiableError",
    "Parameter",
    "ReferenceNotFoundError",
    "Registry",
    "ResolutionError",
    "Shape",
    "UnsatisfiedDependencyError",
    "classify",
    "find_class",
    "reflect_parameters",
    "type_key",
]
