from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol
import logging

import requests

from othershorts.client.api import ApiError
from othershorts.client.session import FeedSession

logger = logging.getLogger(__name__)

NO_VIDEOS_MESSAGE = "No videos found. Upload your watch history."
LOAD_FAILED_MESSAGE = "Failed to load videos. Please try again."


class FeedApi(Protocol):
    def fetch_batch(self, user_id: str, seen: List[str], submitted: List[str]) -> List[Dict[str, Any]]: ...

    def submit_rating(
        self,
        user_id: str,
        reviewer_id: str,
        rating: float,
        political: bool,
        video_url: Optional[str] = None,
    ) -> None: ...


class LoadState(str, Enum):
    FETCHING = "fetching"
    POOL_EXHAUSTED = "pool_exhausted"
    RESETTING = "resetting"
    EXHAUSTED = "exhausted"
    DONE = "done"
    FAILED = "failed"


@dataclass
class LoadOutcome:
    state: LoadState
    added: List[Dict[str, Any]] = field(default_factory=list)
    calls: int = 0
    resets: int = 0


class FeedAccumulator:
    """
    Builds a page of page_size videos out of single-uploader batches.

    Each batch call returns one uploader's videos, so a load keeps calling
    until it has page_size new urls or max_calls calls were made. An empty
    batch while seen is non-empty means every uploader was shown once:
    seen is cleared and the load retries, at most max_resets times per load.
    """

    def __init__(self, api: FeedApi, page_size: int = 5, max_calls: int = 3, max_resets: int = 1):
        self.api = api
        self.page_size = page_size
        self.max_calls = max_calls
        self.max_resets = max_resets

    def load_page(self, session: FeedSession) -> Optional[LoadOutcome]:
        # one outstanding load per session
        if not session.user_id or session.in_flight:
            return None

        session.in_flight = True
        try:
            outcome = self._run(session)
        finally:
            session.in_flight = False

        # keep whatever arrived before a failure; its uploaders are already in seen
        outcome.added = session.merge(outcome.added)
        if outcome.state is LoadState.FAILED:
            session.error = LOAD_FAILED_MESSAGE
            return outcome

        if outcome.added:
            session.error = None
        elif not session.videos:
            session.error = NO_VIDEOS_MESSAGE

        logger.debug(
            "feed load for %s: state=%s added=%d calls=%d resets=%d",
            session.user_id, outcome.state.value, len(outcome.added), outcome.calls, outcome.resets,
        )
        return outcome

    def _run(self, session: FeedSession) -> LoadOutcome:
        outcome = LoadOutcome(state=LoadState.FETCHING)
        known = session.displayed_urls()
        collected_urls = set()

        while True:
            if outcome.state is LoadState.FETCHING:
                if outcome.calls >= self.max_calls:
                    break
                outcome.calls += 1
                try:
                    videos = self.api.fetch_batch(
                        session.user_id,
                        sorted(session.seen),
                        sorted(session.submitted),
                    )
                except (ApiError, requests.RequestException) as exc:
                    logger.error("failed to load videos for %s: %s", session.user_id, exc)
                    outcome.state = LoadState.FAILED
                    return outcome

                if not videos:
                    outcome.state = LoadState.POOL_EXHAUSTED
                    continue

                for v in videos:
                    uploader = v.get("uploaderId")
                    if uploader:
                        session.seen.add(uploader)
                    url = v.get("url")
                    if not url or url in known or url in collected_urls or url in session.submitted:
                        continue
                    collected_urls.add(url)
                    outcome.added.append(v)

                if len(outcome.added) >= self.page_size:
                    outcome.state = LoadState.DONE
                    break
                # short batch: this uploader is in seen now, ask for the next one

            elif outcome.state is LoadState.POOL_EXHAUSTED:
                if session.seen and outcome.resets < self.max_resets:
                    outcome.state = LoadState.RESETTING
                else:
                    outcome.state = LoadState.EXHAUSTED
                    break

            elif outcome.state is LoadState.RESETTING:
                session.seen.clear()
                outcome.resets += 1
                outcome.state = LoadState.FETCHING

        if outcome.state is LoadState.FETCHING:
            # call budget ran out mid-page
            outcome.state = LoadState.DONE if outcome.added else LoadState.EXHAUSTED
        return outcome

    def submit_rating(
        self,
        session: FeedSession,
        video: Dict[str, Any],
        rating: float,
        political: Optional[bool],
    ) -> bool:
        """
        Rate one video once per session. Returns True only when the server
        accepted it; failures are logged and leave the video unrated so the
        user can try again.
        """
        url = video.get("url")
        uploader = video.get("uploaderId")
        if not session.user_id or not uploader or not url or political is None:
            return False
        if session.is_submitted(url) or session.submitting == url:
            return False

        session.submitting = url
        try:
            self.api.submit_rating(
                user_id=uploader,
                reviewer_id=session.user_id,
                rating=rating,
                political=political,
                video_url=url,
            )
        except (ApiError, requests.RequestException) as exc:
            logger.error("rating submission failed for %s: %s", url, exc)
            return False
        finally:
            session.submitting = None

        session.submitted.add(url)
        return True
