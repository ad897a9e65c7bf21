"""Database schema for the Dealership Platform.

SQLite is the default store; Postgres is supported as well.

Timestamps are ISO-8601 TEXT (UTC, with 'Z') for portability across engines.
ISO strings sort lexicographically in time order, so `ORDER BY created_at DESC`
is newest-first on both engines.

Identifiers are uuid4 strings generated by the application.

NOTE: The Postgres schema is generated from the SQLite schema with a small set of
transformations (types + pragmas).
"""

from __future__ import annotations

import re


SCHEMA_SQLITE = r"""
PRAGMA foreign_keys = ON;

-- Identity provider: credentials only.
CREATE TABLE IF NOT EXISTS auth_identities (
    identity_id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_login_at TEXT
);

-- Profiles (one per identity). The role flag lives here.
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    first_name TEXT NOT NULL,
    middle_name TEXT,
    last_name TEXT NOT NULL,
    email TEXT NOT NULL,
    contact_number TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('admin','user')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES auth_identities(identity_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_users_role ON users (role);

-- Vehicle listings
CREATE TABLE IF NOT EXISTS cars (
    id TEXT PRIMARY KEY,
    stock_number TEXT NOT NULL,
    brand TEXT NOT NULL,
    model TEXT NOT NULL,
    year INTEGER NOT NULL,
    month INTEGER NOT NULL,
    mileage INTEGER NOT NULL,
    fuel_type TEXT NOT NULL,
    transmission TEXT NOT NULL,
    price REAL NOT NULL,
    condition TEXT NOT NULL,
    engine_size TEXT,
    horsepower INTEGER,
    drive_type TEXT,
    exterior_color TEXT,
    interior_color TEXT,
    number_of_doors INTEGER,
    seating_capacity INTEGER,
    vin TEXT,
    description TEXT,
    features_json TEXT NOT NULL DEFAULT '[]',
    image_urls_json TEXT NOT NULL DEFAULT '[]',
    status TEXT NOT NULL DEFAULT 'available'
        CHECK (status IN ('available','sold','pending','reserved')),
    created_by TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_cars_created_at ON cars (created_at);
CREATE INDEX IF NOT EXISTS idx_cars_status ON cars (status);

-- Customer inquiries about a listing
CREATE TABLE IF NOT EXISTS inquiries (
    id TEXT PRIMARY KEY,
    car_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    city TEXT NOT NULL,
    contact_number TEXT NOT NULL,
    inquiry TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending','contacted','confirmed','completed','cancelled')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (car_id) REFERENCES cars(id) ON DELETE CASCADE,
    FOREIGN KEY (user_id) REFERENCES auth_identities(identity_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_inquiries_user_created ON inquiries (user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_inquiries_created ON inquiries (created_at);

-- Bookmarks: existence-only (principal, listing) pairs
CREATE TABLE IF NOT EXISTS bookmarks (
    user_id TEXT NOT NULL,
    car_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (user_id, car_id),
    FOREIGN KEY (user_id) REFERENCES auth_identities(identity_id) ON DELETE CASCADE,
    FOREIGN KEY (car_id) REFERENCES cars(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_bookmarks_car ON bookmarks (car_id);
"""


def _sqlite_to_postgres(ddl: str) -> str:
    # Remove SQLite pragmas
    lines: list[str] = []
    for line in ddl.splitlines():
        if line.strip().upper().startswith("PRAGMA "):
            continue
        lines.append(line)
    out = "\n".join(lines)

    # Types
    out = re.sub(r"\bREAL\b", "DOUBLE PRECISION", out)

    return out


SCHEMA_POSTGRES = _sqlite_to_postgres(SCHEMA_SQLITE)


def get_schema_sql(dialect: str) -> str:
    d = (dialect or "").lower()
    if d.startswith("post"):
        return SCHEMA_POSTGRES
    return SCHEMA_SQLITE
