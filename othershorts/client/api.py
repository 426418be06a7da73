from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import requests
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OTHERSHORTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_url: str = "http://localhost:8000"
    timeout_seconds: int = 15

    # one page = page_size new videos, at most max_calls batch requests
    page_size: int = 5
    max_calls: int = 3


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class ApiClient:
    """Thin wrapper over the REST API. Non-2xx responses raise ApiError."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Optional[ClientSettings] = None) -> "ApiClient":
        settings = settings or ClientSettings()
        return cls(settings.api_url, timeout=settings.timeout_seconds)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        kwargs.setdefault("timeout", self.timeout)
        response = self.session.request(method, f"{self.base_url}{path}", **kwargs)

        if not response.ok:
            try:
                message = response.json().get("error") or response.text
            except ValueError:
                message = response.text
            raise ApiError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def list_countries(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/countries")

    def create_user(self, google_id: str) -> Dict[str, Any]:
        return self._request("POST", "/api/users", json={"googleId": google_id})

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/users/{user_id}")

    def update_profile(self, user_id: str, age: int, gender: str, country_id: int) -> Dict[str, Any]:
        return self._request(
            "PUT",
            f"/api/users/{user_id}",
            json={"age": age, "gender": gender, "countryId": country_id},
        )

    def upload_takeout(self, user_id: str, filename: str, content: bytes) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/api/uploadTakeout",
            data={"userId": user_id},
            files={"file": (filename, content)},
        )

    def fetch_batch(
        self,
        user_id: str,
        seen: Iterable[str] = (),
        submitted: Iterable[str] = (),
    ) -> List[Dict[str, Any]]:
        params = {}
        seen = list(seen)
        submitted = list(submitted)
        if seen:
            params["seen"] = ",".join(seen)
        if submitted:
            params["submitted"] = ",".join(submitted)

        data = self._request("GET", f"/api/batch/{user_id}", params=params)
        return list((data or {}).get("videos") or [])

    def submit_rating(
        self,
        user_id: str,
        reviewer_id: str,
        rating: float,
        political: bool,
        video_url: Optional[str] = None,
    ) -> None:
        payload: Dict[str, Any] = {
            "userId": user_id,
            "reviewerId": reviewer_id,
            "rating": rating,
            "political": political,
        }
        if video_url:
            payload["videoUrl"] = video_url
        self._request("POST", "/api/ratings", json=payload)
