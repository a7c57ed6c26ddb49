"""
External feed client.

fetch() returns the raw person dicts for the live list; fetch_day(day) returns
the archived list for a past day (used by backfill). Any upstream problem
(network error, non-2xx, body that isn't JSON, unexpected shape, empty list) raises
FeedUnavailableError so the pipeline can abort before writing anything.

Accepted payload shapes:
  [ {...}, {...} ]                                 — plain array
  {"personList": {"personsLists": [ {...} ]}}      — Forbes real-time envelope
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Protocol

import requests

from app.core.config import Settings, settings
from app.core.errors import FeedUnavailableError

logger = logging.getLogger(__name__)


class FeedSource(Protocol):
    def fetch(self) -> list[dict[str, Any]]:
        ...

    def fetch_day(self, day: date) -> list[dict[str, Any]]:
        ...


def extract_records(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        person_list = payload.get("personList") or {}
        records = person_list.get("personsLists") if isinstance(person_list, dict) else None
        if records is None:
            raise FeedUnavailableError("Feed payload has no person list.")
    else:
        raise FeedUnavailableError("Feed payload is neither a list nor an object.")

    if not isinstance(records, list):
        raise FeedUnavailableError("Feed person list is not an array.")
    if not records:
        raise FeedUnavailableError("No data received from feed.")
    return records


class FeedClient:
    """HTTP JSON feed reader backed by requests."""

    def __init__(
        self,
        url: str,
        timeout: float = 15.0,
        user_agent: str = "WealthObservatory/1.0",
        session: Optional[requests.Session] = None,
        history_url_template: Optional[str] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.user_agent = user_agent
        self.history_url_template = history_url_template
        self._session = session or requests.Session()

    def fetch(self) -> list[dict[str, Any]]:
        return self._get_records(self.url)

    def fetch_day(self, day: date) -> list[dict[str, Any]]:
        """The archived list for one past day, e.g. `.../rtb/2026-03-10.json`."""
        if not self.history_url_template:
            raise FeedUnavailableError("No history feed is configured.")
        return self._get_records(self.history_url_template.format(date=day.isoformat()))

    def _get_records(self, url: str) -> list[dict[str, Any]]:
        logger.info("Fetching feed from %s", url)
        try:
            response = self._session.get(
                url,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Feed request failed: %s", exc)
            raise FeedUnavailableError(f"Feed is unavailable: {exc}") from exc

        if not 200 <= response.status_code < 300:
            logger.error("Feed returned HTTP %s", response.status_code)
            raise FeedUnavailableError(
                f"Feed returned HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FeedUnavailableError("Feed body is not valid JSON.") from exc

        records = extract_records(payload)
        logger.info("Fetched %d feed records", len(records))
        return records


def build_feed_client(cfg: Settings = settings) -> FeedClient:
    return FeedClient(
        url=cfg.FEED_URL,
        timeout=cfg.FEED_TIMEOUT_SECONDS,
        user_agent=cfg.FEED_USER_AGENT,
        history_url_template=cfg.FEED_HISTORY_URL_TEMPLATE,
    )


def get_feed_client() -> FeedSource:
    """FastAPI dependency; tests swap in a fake source."""
    return build_feed_client(settings)
