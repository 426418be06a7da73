from __future__ import annotations

from typing import Optional
import sqlite3

from othershorts.app.errors import DuplicateRatingError


def append_rating(
    conn: sqlite3.Connection,
    target_user_id: str,
    reviewer_id: str,
    rating: int,
    political: bool,
    video_url: Optional[str] = None,
    unique: bool = False,
) -> int:
    """
    Append one rating row and return its id. Rows are never updated or deleted.

    With unique=False (the default) there is no idempotency key, so a retried
    submit appends a second row. unique=True rejects a repeat
    (reviewer, video_url) pair; rows without a video_url are never checked.
    """
    if unique and video_url:
        dup = conn.execute(
            "SELECT 1 FROM ratings WHERE reviewer_id = ? AND video_url = ? LIMIT 1",
            (reviewer_id, video_url),
        ).fetchone()
        if dup:
            raise DuplicateRatingError("This video was already rated by this reviewer")

    cur = conn.execute(
        """
        INSERT INTO ratings(target_user_id, reviewer_id, video_url, rating, political)
        VALUES(?,?,?,?,?)
        """,
        (target_user_id, reviewer_id, video_url, int(rating), 1 if political else 0),
    )
    conn.commit()
    return int(cur.lastrowid)


def count_ratings(conn: sqlite3.Connection, reviewer_id: Optional[str] = None) -> int:
    if reviewer_id is None:
        row = conn.execute("SELECT COUNT(*) AS c FROM ratings").fetchone()
    else:
        row = conn.execute(
            "SELECT COUNT(*) AS c FROM ratings WHERE reviewer_id = ?",
            (reviewer_id,),
        ).fetchone()
    return int(row["c"]) if row else 0
