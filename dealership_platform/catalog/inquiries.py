"""Customer inquiries about a listing."""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Mapping, Optional

from dealership_platform.errors import NotFoundError
from dealership_platform.models import INQUIRY_STATUSES
from dealership_platform.util.time import utcnow_iso
from dealership_platform.util.validation import clean_str, first_missing_field, is_valid_email

REQUIRED_FIELDS = ("car_id", "name", "email", "city", "contact_number", "inquiry")

# Car columns embedded in inquiry responses.
_LIST_CAR_COLUMNS = ("id", "brand", "model", "year", "stock_number")
_DETAIL_CAR_COLUMNS = _LIST_CAR_COLUMNS + ("price",)


def validate_inquiry_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValueError("Invalid request body")

    missing = first_missing_field(payload, REQUIRED_FIELDS)
    if missing is not None:
        raise ValueError(f"Missing required field: {missing}")

    if not is_valid_email(payload.get("email")):
        raise ValueError("Invalid email format")

    return {field: clean_str(payload.get(field)) for field in REQUIRED_FIELDS}


def validate_status(status: Any) -> str:
    if not isinstance(status, str) or status not in INQUIRY_STATUSES:
        raise ValueError("Invalid status value")
    return status


def _select_sql(car_columns: tuple[str, ...]) -> str:
    car_cols = ", ".join([f"c.{c} AS car__{c}" for c in car_columns])
    return f"""
        SELECT i.*, {car_cols}
        FROM inquiries i
        LEFT JOIN cars c ON c.id = i.car_id
    """


def _row_to_inquiry(row: Any, car_columns: tuple[str, ...]) -> Dict[str, Any]:
    d = dict(row)
    car = {c: d.pop(f"car__{c}", None) for c in car_columns}
    d["car"] = car if car.get("id") is not None else None
    return d


def insert_inquiry(conn: Any, values: Mapping[str, Any], *, user_id: str) -> Dict[str, Any]:
    """Create an inquiry. Status always starts as 'pending'."""
    inquiry_id = str(uuid.uuid4())
    now = utcnow_iso()
    conn.execute(
        """
        INSERT INTO inquiries (id, car_id, user_id, name, email, city, contact_number, inquiry, status, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?,?,?,?,?)
        """,
        (
            inquiry_id,
            values["car_id"],
            str(user_id),
            values["name"],
            values["email"],
            values["city"],
            values["contact_number"],
            values["inquiry"],
            "pending",
            now,
            now,
        ),
    )
    row = conn.execute("SELECT * FROM inquiries WHERE id=?", (inquiry_id,)).fetchone()
    return dict(row)


def list_inquiries(conn: Any, *, owner_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Newest first. `owner_id` restricts to one principal's rows (non-admin callers)."""
    sql = _select_sql(_LIST_CAR_COLUMNS)
    params: List[Any] = []
    if owner_id is not None:
        sql += " WHERE i.user_id=?"
        params.append(str(owner_id))
    sql += " ORDER BY i.created_at DESC, i.id DESC"
    rows = conn.execute(sql, tuple(params)).fetchall()
    return [_row_to_inquiry(r, _LIST_CAR_COLUMNS) for r in rows]


def get_inquiry(conn: Any, inquiry_id: str, *, owner_id: Optional[str] = None) -> Dict[str, Any]:
    """Single inquiry with car summary; rows outside `owner_id` are reported as not found."""
    sql = _select_sql(_DETAIL_CAR_COLUMNS) + " WHERE i.id=?"
    params: List[Any] = [str(inquiry_id)]
    if owner_id is not None:
        sql += " AND i.user_id=?"
        params.append(str(owner_id))
    row = conn.execute(sql, tuple(params)).fetchone()
    if row is None:
        raise NotFoundError("Inquiry not found")
    return _row_to_inquiry(row, _DETAIL_CAR_COLUMNS)


def update_inquiry_status(conn: Any, inquiry_id: str, status: str) -> Dict[str, Any]:
    cur = conn.execute(
        "UPDATE inquiries SET status=?, updated_at=? WHERE id=?",
        (validate_status(status), utcnow_iso(), str(inquiry_id)),
    )
    if int(cur.rowcount or 0) == 0:
        raise NotFoundError("Inquiry not found")
    row = conn.execute("SELECT * FROM inquiries WHERE id=?", (str(inquiry_id),)).fetchone()
    return dict(row)
