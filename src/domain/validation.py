"""Tagged validation results shared by the entity factories.

Raw input is parsed into a Pydantic input model (types, ranges, lengths) and
then checked by plain rule functions for cross-field constraints. Both stages
report :class:`FieldError` items instead of raising, so a factory can collect
everything that is wrong before raising a single :class:`ValidationFailed`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import ERR_COMMON_EMPTY_PAYLOAD, FieldError, ValidationFailed

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    errors: tuple[FieldError, ...]

    @property
    def ok(self) -> bool:
        return False


def _field_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


def parse(model: type[M], raw: Mapping[str, Any]) -> Valid[M] | Invalid:
    try:
        return Valid(model.model_validate(dict(raw)))
    except ValidationError as exc:
        errors = tuple(FieldError(_field_path(err["loc"]), err["msg"]) for err in exc.errors())
        return Invalid(errors)


def parse_patch(model: type[M], raw: Mapping[str, Any]) -> Valid[M] | Invalid:
    """Parse a partial update; at least one known field must be present."""
    if not raw:
        return Invalid((FieldError("", ERR_COMMON_EMPTY_PAYLOAD),))
    result = parse(model, raw)
    if isinstance(result, Valid) and not result.value.model_fields_set:
        return Invalid((FieldError("", ERR_COMMON_EMPTY_PAYLOAD),))
    return result


def check(result: Valid[T] | Invalid, *rules: Callable[[T], Iterable[FieldError]]) -> Valid[T] | Invalid:
    """Run cross-field rules on an already parsed value."""
    if isinstance(result, Invalid):
        return result
    errors = tuple(error for rule in rules for error in rule(result.value))
    if errors:
        return Invalid(errors)
    return result


def non_null(*fields: str) -> Callable[[BaseModel], list[FieldError]]:
    """Rule rejecting an explicit ``None`` for patch fields whose entity column is required."""

    def rule(patch: BaseModel) -> list[FieldError]:
        return [
            FieldError(name, "Field cannot be null")
            for name in fields
            if name in patch.model_fields_set and getattr(patch, name) is None
        ]

    return rule


def unwrap(result: Valid[T] | Invalid, *, remarks: str) -> T:
    if isinstance(result, Invalid):
        raise ValidationFailed(result.errors, remarks=remarks)
    return result.value


__all__ = ["Invalid", "Valid", "check", "non_null", "parse", "parse_patch", "unwrap"]
