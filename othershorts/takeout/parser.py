from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional
import json
import logging
import re
import sqlite3

from othershorts.app.errors import EmptyResultError, FormatError
from othershorts.takeout.youtube import DurationLookup, filter_shorts

logger = logging.getLogger(__name__)

# the two URL shapes that carry an id: watch?v=<id> and /shorts/<id>
_ID_IN_URL_RE = re.compile(r"(?:v=|/shorts/)([A-Za-z0-9_-]{11})")

# anchors in the HTML export ("watch-history.html" / localized names)
_HTML_HREF_RE = re.compile(
    r'href="(https://www\.youtube\.com/(?:watch\?v=|shorts/)[A-Za-z0-9_-]{11}[^"]*)"'
)


class TakeoutFormat(str, Enum):
    JSON = "json"
    HTML = "html"
    UNRECOGNIZED = "unrecognized"


@dataclass
class ParsedTakeout:
    format: TakeoutFormat
    urls: List[str] = field(default_factory=list)


@dataclass
class IngestResult:
    found: int      # unique ids extracted from the file
    kept: int       # ids under the duration threshold
    inserted: int   # rows actually new in the videos table


def shorts_url(video_id: str) -> str:
    return f"https://www.youtube.com/shorts/{video_id}"


def _decode(raw: bytes | str) -> str:
    if isinstance(raw, str):
        text = raw
    else:
        text = raw.decode("utf-8", errors="replace")
    return text.lstrip("\ufeff")


def _json_urls(text: str) -> Optional[List[str]]:
    """titleUrl of every entry, or None if this isn't a history JSON array."""
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, list):
        return None

    urls = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        url = entry.get("titleUrl")
        if isinstance(url, str) and url:
            urls.append(url)
    return urls


def parse_takeout(raw: bytes | str) -> ParsedTakeout:
    """
    Classify an uploaded watch-history export and pull candidate URLs.

    JSON export: top-level array, URL in `titleUrl`.
    Anything else, including an array with no URLs, is scanned as the
    HTML export.
    Neither producing a candidate -> UNRECOGNIZED.
    """
    text = _decode(raw)

    urls = _json_urls(text)
    if urls:
        return ParsedTakeout(TakeoutFormat.JSON, urls)

    html_urls = [m.group(1) for m in _HTML_HREF_RE.finditer(text)]
    if html_urls:
        return ParsedTakeout(TakeoutFormat.HTML, html_urls)

    return ParsedTakeout(TakeoutFormat.UNRECOGNIZED, [])


def extract_video_id(url: str) -> Optional[str]:
    # JSON exports sometimes keep the escaped '='
    url = url.replace(r"\u003d", "=")
    match = _ID_IN_URL_RE.search(url)
    return match.group(1) if match else None


def extract_video_ids(urls: Iterable[str]) -> List[str]:
    """Unique ids in first-seen order."""
    seen = set()
    ids: List[str] = []
    for url in urls:
        vid = extract_video_id(url)
        if vid and vid not in seen:
            seen.add(vid)
            ids.append(vid)
    return ids


def store_videos(conn: sqlite3.Connection, user_id: str, video_ids: List[str]) -> int:
    """Insert-if-absent by URL. Returns how many rows were new."""
    before = conn.total_changes
    conn.executemany(
        "INSERT OR IGNORE INTO videos(url, user_id) VALUES(?, ?)",
        [(shorts_url(vid), user_id) for vid in video_ids],
    )
    conn.commit()
    return conn.total_changes - before


def ingest_takeout(
    conn: sqlite3.Connection,
    user_id: str,
    raw: bytes | str,
    lookup: DurationLookup,
    max_seconds: int = 180,
    batch_size: int = 50,
) -> IngestResult:
    parsed = parse_takeout(raw)
    if parsed.format is TakeoutFormat.UNRECOGNIZED:
        raise FormatError("Invalid file format. Please upload watch-history.json or watch-history.html.")

    ids = extract_video_ids(parsed.urls)
    if not ids:
        raise EmptyResultError("No YouTube videos found in the provided history.")

    logger.info("takeout for %s: format=%s candidates=%d", user_id, parsed.format.value, len(ids))

    keep = filter_shorts(ids, lookup, max_seconds=max_seconds, batch_size=batch_size)
    if not keep:
        raise EmptyResultError(f"No videos under {max_seconds} seconds were found in your history.")

    inserted = store_videos(conn, user_id, keep)
    logger.info("takeout for %s: kept=%d inserted=%d", user_id, len(keep), inserted)

    return IngestResult(found=len(ids), kept=len(keep), inserted=inserted)
