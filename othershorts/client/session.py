from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set


@dataclass
class FeedSession:
    """
    Everything the feed screen knows about the current viewing session.

    seen:      uploader ids already served (cleared on pool exhaustion)
    submitted: video urls already rated, never cleared
    videos:    the list on screen, unique by url
    """
    user_id: str
    seen: Set[str] = field(default_factory=set)
    submitted: Set[str] = field(default_factory=set)
    videos: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    in_flight: bool = False
    submitting: Optional[str] = None

    def displayed_urls(self) -> Set[str]:
        return {v["url"] for v in self.videos}

    def is_submitted(self, url: str) -> bool:
        return url in self.submitted

    def merge(self, videos: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Append videos not already on screen. Returns what was added."""
        known = self.displayed_urls()
        added = []
        for v in videos:
            url = v.get("url")
            if not url or url in known:
                continue
            known.add(url)
            added.append(v)
        self.videos.extend(added)
        return added

    def remove(self, url: str) -> None:
        # player reported the video as unavailable
        self.videos = [v for v in self.videos if v.get("url") != url]
