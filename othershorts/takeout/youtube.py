from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional
import logging
import re

import requests

from othershorts.app.errors import UpstreamError

logger = logging.getLogger(__name__)

# ids -> {id: ISO-8601 duration}; ids YouTube doesn't know are simply absent
DurationLookup = Callable[[List[str]], Dict[str, str]]

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def iso8601_duration_to_seconds(duration: str | None) -> Optional[int]:
    """
    'PT1H2M3S' -> 3723. Returns None for anything else ('P0D' on live
    streams, empty, garbage) so callers can skip the item.
    """
    if not duration:
        return None
    match = _DURATION_RE.fullmatch(duration.strip())
    if not match or not any(match.groups()):
        return None
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def chunked(lst: List[str], n: int) -> Iterator[List[str]]:
    for i in range(0, len(lst), n):
        yield lst[i:i + n]


class YouTubeDurationClient:
    """Duration lookup over the YouTube Data API v3 `videos` endpoint."""

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://www.googleapis.com/youtube/v3/videos",
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_durations(self, video_ids: List[str]) -> Dict[str, str]:
        if not video_ids:
            return {}

        params = {
            "part": "contentDetails",
            "id": ",".join(video_ids),
            "key": self.api_key,
        }
        try:
            response = self.session.get(self.api_url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamError(f"YouTube request failed: {exc}") from exc

        try:
            payload: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise UpstreamError(f"YouTube returned non-JSON (HTTP {response.status_code})") from exc

        if response.status_code != 200 or "error" in payload:
            err = payload.get("error") or {}
            message = err.get("message") if isinstance(err, dict) else str(err)
            raise UpstreamError(f"YouTube API error (HTTP {response.status_code}): {message}")

        out: Dict[str, str] = {}
        for item in payload.get("items") or []:
            vid = item.get("id")
            duration = (item.get("contentDetails") or {}).get("duration")
            if vid and duration:
                out[str(vid)] = str(duration)
        return out

    __call__ = fetch_durations


def filter_shorts(
    video_ids: Iterable[str],
    lookup: DurationLookup,
    max_seconds: int = 180,
    batch_size: int = 50,
) -> List[str]:
    """
    Keep ids whose duration is <= max_seconds, in input order.

    A failed batch is logged and skipped, the rest still go through.
    Items with a missing or unparsable duration are dropped silently.
    """
    ids = list(video_ids)
    keep: List[str] = []

    for batch in chunked(ids, batch_size):
        try:
            durations = lookup(batch)
        except UpstreamError as exc:
            logger.warning("duration lookup failed for %d ids, skipping batch: %s", len(batch), exc)
            continue

        for vid in batch:
            seconds = iso8601_duration_to_seconds(durations.get(vid))
            if seconds is None:
                continue
            if seconds <= max_seconds:
                keep.append(vid)

    return keep
