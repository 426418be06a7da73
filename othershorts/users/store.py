from __future__ import annotations

from typing import Any, Dict, List, Optional
import hashlib
import sqlite3

from othershorts.app.errors import NotFoundError, ValidationError


PROFILE_COLUMNS = "google_hash AS id, age, gender, country_id"


def hash_google_id(google_id: str) -> str:
    return hashlib.sha256(google_id.encode("utf-8")).hexdigest()


def list_countries(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    rows = conn.execute("SELECT id, name FROM countries ORDER BY name").fetchall()
    return [dict(r) for r in rows]


def get_user(conn: sqlite3.Connection, user_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        f"SELECT {PROFILE_COLUMNS} FROM users WHERE google_hash = ?",
        (user_id,),
    ).fetchone()
    return dict(row) if row else None


def create_or_fetch_user(conn: sqlite3.Connection, google_id: str) -> Dict[str, Any]:
    """
    First sign-in creates the row with an empty profile,
    later sign-ins just return what is stored.
    """
    google_hash = hash_google_id(google_id)
    conn.execute(
        "INSERT OR IGNORE INTO users(google_raw_id, google_hash) VALUES(?, ?)",
        (google_id, google_hash),
    )
    conn.commit()

    user = get_user(conn, google_hash)
    if user is None:
        raise NotFoundError("User could not be created or found.")
    return user


def update_profile(
    conn: sqlite3.Connection,
    user_id: str,
    age: int,
    gender: str,
    country_id: int,
) -> Dict[str, Any]:
    country = conn.execute("SELECT id FROM countries WHERE id = ?", (country_id,)).fetchone()
    if not country:
        raise ValidationError("Unknown countryId")

    cur = conn.execute(
        "UPDATE users SET age = ?, gender = ?, country_id = ? WHERE google_hash = ?",
        (age, gender, country_id, user_id),
    )
    conn.commit()
    if cur.rowcount == 0:
        raise NotFoundError("User not found")

    return get_user(conn, user_id)
