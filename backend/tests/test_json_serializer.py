import json
from datetime import date, datetime, timezone
from decimal import Decimal

from bson import ObjectId
from bson.decimal128 import Decimal128

from services.json_serializer import safe_json_dumps, serialize_for_json


def test_bson_values_become_json_types():
    oid = ObjectId()
    result = serialize_for_json({
        "_id": oid,
        "amount": Decimal128("1234.50"),
        "ratio": Decimal("0.25"),
        "when": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        "day": date(2024, 5, 1),
        "nested": [{"ids": (oid,)}],
    })

    assert result == {
        "_id": str(oid),
        "amount": 1234.5,
        "ratio": 0.25,
        "when": "2024-05-01T12:00:00+00:00",
        "day": "2024-05-01",
        "nested": [{"ids": [str(oid)]}],
    }


def test_non_finite_floats_become_null():
    assert serialize_for_json({"a": float("nan"), "b": float("inf"), "c": 1.5}) == {
        "a": None,
        "b": None,
        "c": 1.5,
    }


def test_safe_json_dumps_is_valid_json():
    payload = json.loads(safe_json_dumps({"_id": ObjectId("64f0c0ffee0000000000beef"), "n": 1}))
    assert payload == {"_id": "64f0c0ffee0000000000beef", "n": 1}
