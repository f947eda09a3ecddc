from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Sequence


class ResolutionError(RuntimeError):
    """Base class for every error raised while registering or resolving dependencies."""


class ReferenceNotFoundError(ResolutionError, LookupError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Couldn't find {key}")
        self.key = key


class NotInstantiableError(ResolutionError, TypeError):
    def __init__(self, key: str) -> None:
        super().__init__(f"{key} is not instantiable")
        self.key = key


class UnsatisfiedDependencyError(ResolutionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Could not satisfy dependency {name}")
        self.name = name


class DuplicateRegistrationError(ResolutionError):
    """A name or a derived class slot is already occupied.

    `kind` is either "name" or "class".
    """

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"Duplicate dependency {kind} {key}")
        self.kind = kind
        self.key = key


class AmbiguousCallableError(ResolutionError, TypeError):
    def __init__(self, target: object) -> None:
        super().__init__(f"Unable to determine how to invoke callable {target!r}")
        self.target = target


class ClassNotFoundError(ResolutionError, LookupError):
    def __init__(self, name: str, tried: Sequence[str]) -> None:
        super().__init__(f"Class {name} not found, tried namespaces: {', '.join(tried)}")
        self.name = name
        self.tried = tuple(tried)


class CircularDependencyError(ResolutionError):
    def __init__(self, path: Sequence[str]) -> None:
        super().__init__(f"Circular dependency: {' -> '.join(path)}")
        self.path = tuple(path)
