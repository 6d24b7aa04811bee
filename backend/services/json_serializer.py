"""
JSON Serialization Helper - Converts BSON values returned by aggregations
(ObjectId, Decimal128, datetimes) to JSON-compatible types
"""

import json
import math
from datetime import datetime, date
from decimal import Decimal

from bson import ObjectId
from bson.decimal128 import Decimal128


def serialize_for_json(obj):
    """
    Recursively convert non-JSON-serializable objects to strings or native types.

    Handles:
    - ObjectId -> hex string
    - Decimal128 / Decimal -> float
    - datetime / date -> ISO format string
    - NaN / infinite floats -> None
    - dict/list -> recursively process
    """
    if isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, Decimal128):
        return serialize_for_json(float(obj.to_decimal()))
    elif isinstance(obj, Decimal):
        return serialize_for_json(float(obj))
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, float):
        return None if math.isnan(obj) or math.isinf(obj) else obj
    elif isinstance(obj, dict):
        return {key: serialize_for_json(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple, set)):
        return [serialize_for_json(item) for item in obj]
    else:
        return obj


def safe_json_dumps(obj):
    """Safely convert object to JSON string, handling all BSON types"""
    serialized = serialize_for_json(obj)
    return json.dumps(serialized, default=str)
