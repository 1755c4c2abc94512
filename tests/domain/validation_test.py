import pytest
from pydantic import BaseModel, ConfigDict, Field

from domain.errors import ERR_COMMON_EMPTY_PAYLOAD, ErrorLayer, FieldError, ValidationFailed
from domain.validation import Invalid, Valid, check, non_null, parse, parse_patch, unwrap


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    size: int | None = Field(default=None, ge=0)


def _size_below_ten(payload: _Payload) -> list[FieldError]:
    if payload.size is not None and payload.size >= 10:
        return [FieldError("size", "too big")]
    return []


def test_parse_returns_tagged_results() -> None:
    valid = parse(_Payload, {"name": "a", "size": 1})
    invalid = parse(_Payload, {"size": -1, "color": "red"})

    assert isinstance(valid, Valid)
    assert valid.ok
    assert valid.value.size == 1
    assert isinstance(invalid, Invalid)
    assert not invalid.ok
    assert {error.field for error in invalid.errors} == {"size", "color"}


def test_parse_patch_rejects_empty_payload() -> None:
    result = parse_patch(_Payload, {})

    assert isinstance(result, Invalid)
    assert result.errors == (FieldError("", ERR_COMMON_EMPTY_PAYLOAD),)


def test_check_runs_rules_only_on_valid_input() -> None:
    assert isinstance(check(parse(_Payload, {"size": 3}), _size_below_ten), Valid)

    too_big = check(parse(_Payload, {"size": 12}), _size_below_ten)
    assert isinstance(too_big, Invalid)
    assert too_big.errors == (FieldError("size", "too big"),)

    unparsed = parse(_Payload, {"size": "x"})
    assert check(unparsed, _size_below_ten) is unparsed


def test_non_null_flags_explicit_none() -> None:
    result = check(parse_patch(_Payload, {"name": None, "size": 1}), non_null("name", "size"))

    assert isinstance(result, Invalid)
    assert [error.field for error in result.errors] == ["name"]


def test_unwrap_raises_validation_failed() -> None:
    assert unwrap(Valid(5), remarks="unused") == 5

    with pytest.raises(ValidationFailed) as exc_info:
        unwrap(Invalid((FieldError("size", "too big"),)), remarks="Resize failed")

    error = exc_info.value
    assert error.layer == ErrorLayer.DOMAIN
    assert error.remarks == "[DOMAIN] Resize failed"
    assert error.message == "size: too big"
    assert error.to_dict()["errors"] == [{"field": "size", "message": "too big"}]
