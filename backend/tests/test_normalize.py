import pytest
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from utils.normalize import ValidationError, from_model_error, to_choice, to_direction, to_optional_bool, to_str


def test_to_str():
    assert to_str("  x ") == "x"
    assert to_str("   ", default="d") == "d"
    assert to_str(None) is None
    assert to_str("ABC", lower=True) == "abc"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Monthly", "monthly"),
        (" quarterly ", "quarterly"),
        ("hourly", "yearly"),
        (None, "yearly"),
        ("", "yearly"),
    ],
)
def test_to_choice(raw, expected):
    assert to_choice(raw, ["yearly", "quarterly", "monthly"], default="yearly") == expected


def test_to_choice_returns_canonical_spelling():
    assert to_choice("mpcount", ["utilizationPercentage", "mpCount"], default="mpCount") == "mpCount"


@pytest.mark.parametrize(
    "raw, expected",
    [("asc", 1), ("ASC", 1), ("desc", -1), ("-1", -1), ("sideways", -1), (None, -1)],
)
def test_to_direction(raw, expected):
    assert to_direction(raw) == expected


def test_to_direction_custom_default():
    assert to_direction(None, default=1) == 1


def test_from_model_error_keeps_first_field():
    class Sample(BaseModel):
        count: int

    with pytest.raises(ModelValidationError) as exc_info:
        Sample.model_validate({"count": "many"})

    err = from_model_error(exc_info.value)

    assert isinstance(err, ValidationError)
    assert err.field == "count"
    assert err.received_value == "many"
    assert err.message


def test_validation_error_is_value_error():
    err = ValidationError("bad", field="limit", received_value="x")
    assert isinstance(err, ValueError)
    assert str(err) == "bad"


@pytest.mark.parametrize(
    "raw, expected",
    [("true", True), ("ON", True), ("1", True), (True, True), ("no", False), ("0", False), ("maybe", None), (None, None)],
)
def test_to_optional_bool(raw, expected):
    assert to_optional_bool(raw) is expected
