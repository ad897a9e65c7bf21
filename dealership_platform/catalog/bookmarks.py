"""Bookmarks: existence-only (principal, listing) pairs."""

from __future__ import annotations

from typing import Any, Dict, List

from dealership_platform.util.time import utcnow_iso

from .cars import row_to_car


def add_bookmark(conn: Any, *, user_id: str, car_id: str) -> bool:
    """Insert the pair; returns False when it already existed."""
    cur = conn.execute(
        """
        INSERT INTO bookmarks (user_id, car_id, created_at) VALUES (?, ?, ?)
        ON CONFLICT (user_id, car_id) DO NOTHING
        """,
        (str(user_id), str(car_id), utcnow_iso()),
    )
    return int(cur.rowcount or 0) > 0


def remove_bookmark(conn: Any, *, user_id: str, car_id: str) -> bool:
    cur = conn.execute(
        "DELETE FROM bookmarks WHERE user_id=? AND car_id=?",
        (str(user_id), str(car_id)),
    )
    return int(cur.rowcount or 0) > 0


def list_bookmarked_cars(conn: Any, *, user_id: str) -> List[Dict[str, Any]]:
    """Bookmarked listings of one principal, most recently bookmarked first."""
    rows = conn.execute(
        """
        SELECT c.*
        FROM bookmarks b
        JOIN cars c ON c.id = b.car_id
        WHERE b.user_id=?
        ORDER BY b.created_at DESC
        """,
        (str(user_id),),
    ).fetchall()
    return [row_to_car(r) for r in rows]
