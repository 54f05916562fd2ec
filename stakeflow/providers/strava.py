#!/usr/bin/env python3
"""
Strava activity provider.

- ``parse_strava_activity`` maps the provider's activity JSON to ``Activity``
- ``StravaClient`` fetches activity pages over HTTP
- ``ActivitySyncService`` upserts fetched activities into storage
- ``handle_webhook_event`` / ``verify_subscription`` process push events

OAuth token exchange and refresh happen outside this module; the client is
handed a valid bearer token and raises ``AuthExpiredError`` when it is not.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import requests

from ..config import StravaConfig, get_strava_config
from ..const import KILOJOULES_TO_KCAL
from ..exceptions import ActivitySourceError, AuthExpiredError, RateLimitError
from ..models import Activity, ActivityType, Goal
from ..storage import InMemoryStorage
from ..utils import get_logger
from ..utils.retry import fetch_retry_config

logger = get_logger(__name__)


def _parse_start_date(value: str) -> datetime:
    # Provider timestamps are UTC with a trailing "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_strava_activity(payload: Mapping[str, Any]) -> Optional[Activity]:
    """
    Map a provider activity to an ``Activity``.

    Returns:
        The activity, or None for unsupported activity types and payloads
        missing required fields
    """
    try:
        activity_type = ActivityType(payload.get("type"))
    except ValueError:
        return None

    try:
        kilojoules = payload.get("kilojoules")
        calories = payload.get("calories") or (kilojoules * KILOJOULES_TO_KCAL if kilojoules else None)
        return Activity(
            source_id=int(payload["id"]),
            activity_type=activity_type,
            distance_meters=payload["distance"],
            moving_time_seconds=payload["moving_time"],
            elevation_gain_meters=payload.get("total_elevation_gain") or 0.0,
            average_speed_mps=payload.get("average_speed") or 0.0,
            max_speed_mps=payload.get("max_speed") or 0.0,
            average_heart_rate_bpm=payload.get("average_heartrate") or None,
            max_heart_rate_bpm=payload.get("max_heartrate") or None,
            calories_kcal=calories,
            start_timestamp=_parse_start_date(payload["start_date"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Skipping malformed provider activity",
                       source_id=payload.get("id"), error=str(exc))
        return None


class StravaClient:
    """Minimal read-only client for the athlete activities endpoint"""

    def __init__(self, token: str, config: Optional[StravaConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = get_strava_config(config)
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {token}"})
        self._get_with_retry = fetch_retry_config(self.config)(self._get)

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        return self.session.get(
            f"{self.config.api_base}{path}",
            params=params,
            timeout=self.config.request_timeout,
        )

    def list_activities(self,
                        after: Optional[datetime] = None,
                        page: int = 1,
                        per_page: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch one page of the athlete's activities.

        Args:
            after: Only activities starting after this instant
            page: 1-based page number
            per_page: Page size (configured default when omitted)

        Raises:
            RateLimitError: HTTP 429
            AuthExpiredError: HTTP 401
            ActivitySourceError: any other failure
        """
        params: Dict[str, Any] = {"page": page, "per_page": per_page or self.config.per_page}
        if after is not None:
            params["after"] = int(after.timestamp())

        try:
            response = self._get_with_retry("/athlete/activities", params)
        except requests.RequestException as exc:
            raise ActivitySourceError(
                "Activity provider unreachable", retryable=True,
                details={"error_type": type(exc).__name__},
            ) from exc

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Activity provider rate limit exceeded",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if response.status_code == 401:
            raise AuthExpiredError("Activity provider rejected the access token")
        if response.status_code >= 400:
            raise ActivitySourceError(
                f"Activity provider returned HTTP {response.status_code}",
                retryable=response.status_code >= 500,
                details={"status_code": response.status_code},
            )

        activities = response.json()
        logger.debug("Fetched provider activities", page=page, count=len(activities))
        return activities


@dataclass
class SyncResult:
    synced: int = 0
    fetched: int = 0
    has_more: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ActivitySyncService:
    """Stores provider activities that count toward at least one active goal"""

    def __init__(self, storage: InMemoryStorage, config: Optional[StravaConfig] = None):
        self.storage = storage
        self.config = get_strava_config(config)

    def _store(self, user_id: str, payloads: Sequence[Mapping[str, Any]], goals: Sequence[Goal]) -> int:
        active = [goal for goal in goals if goal.is_active]
        synced = 0
        for payload in payloads:
            activity = parse_strava_activity(payload)
            if activity is None:
                continue
            if any(goal.type_filter.matches(activity.activity_type) for goal in active):
                self.storage.upsert_activity(user_id, activity)
                synced += 1
        return synced

    def sync(self, user_id: str, client: StravaClient, goals: Sequence[Goal],
             now: datetime, days: int = 7) -> SyncResult:
        """Sync the activities of the trailing ``days`` days."""
        per_page = self.config.per_page
        payloads = client.list_activities(after=now - timedelta(days=days), per_page=per_page)
        result = SyncResult(
            synced=self._store(user_id, payloads, goals),
            fetched=len(payloads),
            has_more=len(payloads) == per_page,
        )
        logger.info("Synced recent activities", user_id=user_id, **result.to_dict())
        return result

    def sync_page(self, user_id: str, client: StravaClient, goals: Sequence[Goal],
                  page: int = 1, per_page: Optional[int] = None) -> SyncResult:
        """Sync one page of the full activity history, for backfills."""
        per_page = per_page or self.config.per_page
        payloads = client.list_activities(page=page, per_page=per_page)
        result = SyncResult(
            synced=self._store(user_id, payloads, goals),
            fetched=len(payloads),
            has_more=len(payloads) == per_page,
        )
        logger.info("Synced history page", user_id=user_id, page=page, **result.to_dict())
        return result


class WebhookAction(str, Enum):
    """What a webhook event caused"""

    ACTIVITY_DELETED = "activity_deleted"
    USER_PURGED = "user_purged"
    IGNORED = "ignored"


def verify_subscription(mode: Optional[str], token: Optional[str], challenge: Optional[str],
                        expected_token: Optional[str] = None) -> Optional[Dict[str, str]]:
    """
    Answer the provider's subscription handshake.

    Returns:
        ``{"hub.challenge": challenge}`` when the request is valid, else None
    """
    expected = expected_token or get_strava_config().webhook_verify_token
    if mode == "subscribe" and token == expected and challenge is not None:
        return {"hub.challenge": challenge}
    return None


def handle_webhook_event(event: Mapping[str, Any], storage: InMemoryStorage,
                         resolve_user: Optional[Callable[[int], Optional[str]]] = None) -> WebhookAction:
    """
    Apply a provider push event to storage.

    Args:
        event: Event body (object_type, object_id, aspect_type, owner_id, updates)
        storage: Storage to update
        resolve_user: Maps a provider athlete ID to a user ID; defaults to
            the athlete ID as a string
    """
    object_type = event.get("object_type")
    aspect_type = event.get("aspect_type")
    logger.info("Received provider webhook", object_type=object_type, aspect_type=aspect_type)

    if object_type == "activity" and aspect_type == "delete":
        storage.delete_activity(int(event["object_id"]))
        return WebhookAction.ACTIVITY_DELETED

    if object_type == "athlete" and aspect_type == "update":
        updates = event.get("updates") or {}
        if updates.get("authorized") == "false":
            owner_id = int(event["owner_id"])
            user_id = resolve_user(owner_id) if resolve_user else str(owner_id)
            if user_id is None:
                logger.warning("Deauthorized athlete has no user", owner_id=owner_id)
                return WebhookAction.IGNORED
            storage.purge_user(user_id)
            return WebhookAction.USER_PURGED

    return WebhookAction.IGNORED
