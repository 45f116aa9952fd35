"""
Field-level validation results.

Services hand back a ``SaveResult`` instead of raising: either the persisted
entity, or the list of ``FieldError`` values explaining why it was not saved.
"""
from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")

BLANK = "can't be blank"
TAKEN = "has already been taken"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class SaveResult(Generic[T]):
    entity: T | None = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def saved(cls, entity: T) -> "SaveResult[T]":
        return cls(entity=entity)

    @classmethod
    def invalid(cls, errors: list[FieldError]) -> "SaveResult[T]":
        return cls(errors=list(errors))


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_present(values: Mapping[str, Any], *fields: str) -> list[FieldError]:
    """Return a ``can't be blank`` error for each of *fields* that is blank in *values*."""
    return [FieldError(name, BLANK) for name in fields if is_blank(values.get(name))]
