from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import random
import sqlite3

logger = logging.getLogger(__name__)


@dataclass
class FeedVideo:
    url: str
    uploaderId: str
    age: Optional[int]
    gender: Optional[str]
    country: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_id_list(raw: str | None) -> List[str]:
    """'a,b,,c' -> ['a', 'b', 'c']; None or '' -> []"""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _not_in(column: str, values: List[str]) -> Tuple[str, List[Any]]:
    if not values:
        return "", []
    q_marks = ",".join(["?"] * len(values))
    return f" AND {column} NOT IN ({q_marks})", list(values)


def eligible_uploaders(
    conn: sqlite3.Connection,
    requester_id: str,
    seen: Iterable[str] = (),
    submitted: Iterable[str] = (),
) -> List[str]:
    """
    Uploaders that can be served to requester_id right now:
    - not the requester, not already seen
    - at least one video whose url was not submitted yet
    - profile complete (country set)
    """
    seen_sql, seen_params = _not_in("v.user_id", sorted(set(seen)))
    sub_sql, sub_params = _not_in("v.url", sorted(set(submitted)))

    rows = conn.execute(
        f"""
        SELECT v.user_id AS user_id
        FROM videos v
        JOIN users u ON u.google_hash = v.user_id
        WHERE v.user_id <> ?
          AND u.country_id IS NOT NULL
          {seen_sql}
          {sub_sql}
        GROUP BY v.user_id
        ORDER BY v.user_id
        """,
        (requester_id, *seen_params, *sub_params),
    ).fetchall()
    return [str(r["user_id"]) for r in rows]


def uploader_videos(
    conn: sqlite3.Connection,
    uploader_id: str,
    submitted: Iterable[str] = (),
    limit: int = 5,
) -> List[FeedVideo]:
    sub_sql, sub_params = _not_in("v.url", sorted(set(submitted)))

    # LEFT JOIN so a dangling country id can't drop the whole batch
    rows = conn.execute(
        f"""
        SELECT
          v.url AS url,
          u.google_hash AS uploader_id,
          u.age AS age,
          u.gender AS gender,
          c.name AS country
        FROM videos v
        JOIN users u ON u.google_hash = v.user_id
        LEFT JOIN countries c ON c.id = u.country_id
        WHERE v.user_id = ?
          {sub_sql}
        ORDER BY v.id DESC
        LIMIT ?
        """,
        (uploader_id, *sub_params, limit),
    ).fetchall()

    return [
        FeedVideo(
            url=str(r["url"]),
            uploaderId=str(r["uploader_id"]),
            age=r["age"],
            gender=r["gender"],
            country=r["country"],
        )
        for r in rows
    ]


def select_batch(
    conn: sqlite3.Connection,
    requester_id: str,
    seen: Iterable[str] = (),
    submitted: Iterable[str] = (),
    limit: int = 5,
    rng: Optional[random.Random] = None,
) -> List[FeedVideo]:
    """
    One feed step: pick a single eligible uploader uniformly at random and
    return up to `limit` of their unrated videos, newest first.

    An empty list means the pool is exhausted for this (seen, submitted)
    combination. That is not an error; the client decides whether to reset
    its seen set and ask again.
    """
    seen = list(seen)
    submitted = list(submitted)

    pool = eligible_uploaders(conn, requester_id, seen=seen, submitted=submitted)
    if not pool:
        logger.debug("empty uploader pool for %s (seen=%d submitted=%d)", requester_id, len(seen), len(submitted))
        return []

    chooser = rng or random
    uploader_id = chooser.choice(pool)

    return uploader_videos(conn, uploader_id, submitted=submitted, limit=limit)
