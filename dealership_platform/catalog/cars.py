"""Vehicle listings: payload validation and store operations.

Every function takes an open connection (see `dealership_platform.db.connect`)
and performs exactly one statement (plus a read-back of the written row).
"""

from __future__ import annotations

import json
import math
import uuid
from typing import Any, Dict, List, Mapping, Optional

from dealership_platform.errors import NotFoundError
from dealership_platform.models import CAR_STATUSES
from dealership_platform.util.time import utcnow_iso
from dealership_platform.util.validation import first_missing_field, is_blank

REQUIRED_FIELDS = (
    "stock_number",
    "brand",
    "model",
    "year",
    "month",
    "mileage",
    "fuel_type",
    "transmission",
    "price",
    "condition",
)

INT_FIELDS = ("year", "month", "mileage", "horsepower", "number_of_doors", "seating_capacity")
FLOAT_FIELDS = ("price",)
TEXT_FIELDS = (
    "stock_number",
    "brand",
    "model",
    "fuel_type",
    "transmission",
    "condition",
    "engine_size",
    "drive_type",
    "exterior_color",
    "interior_color",
    "vin",
    "description",
    "status",
)
LIST_FIELDS = ("features", "image_urls")

# Server-managed columns; silently dropped from update payloads.
PROTECTED_FIELDS = ("id", "created_at", "created_by", "updated_at")

EDITABLE_FIELDS = TEXT_FIELDS + INT_FIELDS + FLOAT_FIELDS + LIST_FIELDS

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _coerce_int(field: str, value: Any) -> int:
    v: Optional[int] = None
    if isinstance(value, bool):
        v = None
    elif isinstance(value, int):
        v = value
    elif isinstance(value, float) and value.is_integer():
        v = int(value)
    elif isinstance(value, str):
        try:
            v = int(value.strip())
        except ValueError:
            v = None
    # Columns are signed 64-bit INTEGER.
    if v is None or not INT64_MIN <= v <= INT64_MAX:
        raise ValueError(f"Invalid value for field: {field}")
    return v


def _coerce_float(field: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Invalid value for field: {field}")
    try:
        f = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for field: {field}")
    if not math.isfinite(f):
        raise ValueError(f"Invalid value for field: {field}")
    return f


def _coerce_list(field: str, value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"Invalid value for field: {field}")
    return [v.strip() for v in value if v.strip()]


def _normalize(field: str, value: Any) -> Any:
    if field in LIST_FIELDS:
        return _coerce_list(field, value)
    if value is None:
        return None
    if field in INT_FIELDS:
        v = _coerce_int(field, value)
        if field == "month" and not 1 <= v <= 12:
            raise ValueError("Invalid value for field: month")
        if v < 0:
            raise ValueError(f"Invalid value for field: {field}")
        return v
    if field in FLOAT_FIELDS:
        f = _coerce_float(field, value)
        if f < 0:
            raise ValueError(f"Invalid value for field: {field}")
        return f
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ValueError(f"Invalid value for field: {field}")
    s = str(value).strip()
    return s or None


def validate_car_payload(payload: Mapping[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    """Validate a create (partial=False) or update (partial=True) payload.

    Returns the normalized column values. Raises ValueError with the message
    the API reports as 400.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("Invalid request body")

    data = {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}

    if not partial:
        missing = first_missing_field(data, REQUIRED_FIELDS)
        if missing is not None:
            raise ValueError(f"Missing required field: {missing}")

    for field in data:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown field: {field}")

    out: Dict[str, Any] = {}
    for field, value in data.items():
        if field in REQUIRED_FIELDS and is_blank(value):
            raise ValueError(f"Missing required field: {field}")
        out[field] = _normalize(field, value)

    status = out.get("status")
    if "status" in out and status not in CAR_STATUSES:
        raise ValueError("Invalid status value")

    return out


def _to_columns(values: Mapping[str, Any]) -> Dict[str, Any]:
    cols: Dict[str, Any] = {}
    for k, v in values.items():
        if k in LIST_FIELDS:
            cols[f"{k}_json"] = json.dumps(v or [])
        else:
            cols[k] = v
    return cols


def row_to_car(row: Any) -> Dict[str, Any]:
    d = dict(row)
    for field in LIST_FIELDS:
        raw = d.pop(f"{field}_json", None)
        try:
            d[field] = json.loads(raw) if raw else []
        except (TypeError, ValueError):
            d[field] = []
    return d


def insert_car(conn: Any, values: Mapping[str, Any], *, created_by: str) -> Dict[str, Any]:
    car_id = str(uuid.uuid4())
    now = utcnow_iso()
    cols = _to_columns(values)
    if not cols.get("status"):
        cols["status"] = "available"
    cols.update({"id": car_id, "created_by": created_by, "created_at": now, "updated_at": now})

    names = list(cols.keys())
    placeholders = ",".join(["?"] * len(names))
    conn.execute(
        f"INSERT INTO cars ({', '.join(names)}) VALUES ({placeholders})",
        [cols[n] for n in names],
    )
    return get_car(conn, car_id)


def list_cars(conn: Any) -> List[Dict[str, Any]]:
    """All listings, newest first."""
    rows = conn.execute("SELECT * FROM cars ORDER BY created_at DESC, id DESC").fetchall()
    return [row_to_car(r) for r in rows]


def get_car(conn: Any, car_id: str) -> Dict[str, Any]:
    row = conn.execute("SELECT * FROM cars WHERE id=?", (str(car_id),)).fetchone()
    if row is None:
        raise NotFoundError("Car not found")
    return row_to_car(row)


def update_car(conn: Any, car_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
    cols = _to_columns(changes)
    cols["updated_at"] = utcnow_iso()

    sets = ", ".join([f"{k}=?" for k in cols])
    params = list(cols.values()) + [str(car_id)]
    cur = conn.execute(f"UPDATE cars SET {sets} WHERE id=?", params)
    if int(cur.rowcount or 0) == 0:
        raise NotFoundError("Car not found")
    return get_car(conn, car_id)


def delete_car(conn: Any, car_id: str) -> None:
    cur = conn.execute("DELETE FROM cars WHERE id=?", (str(car_id),))
    if int(cur.rowcount or 0) == 0:
        raise NotFoundError("Car not found")
