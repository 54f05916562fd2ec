"""
Tests for the Strava provider adapter.
"""

import pytest
import requests
from datetime import datetime, timezone
from unittest.mock import Mock

from stakeflow.exceptions import ActivitySourceError, AuthExpiredError, RateLimitError
from stakeflow.models import ActivityType
from stakeflow.providers.strava import (
    ActivitySyncService, StravaClient, WebhookAction,
    handle_webhook_event, parse_strava_activity, verify_subscription,
)
from stakeflow.storage import InMemoryStorage

from conftest import NOW, make_activity, make_goal


def strava_payload(activity_id: int = 101, activity_type: str = "Run", **overrides):
    payload = {
        "id": activity_id,
        "type": activity_type,
        "distance": 5500.0,
        "moving_time": 1800,
        "start_date": "2024-06-11T06:30:00Z",
        "total_elevation_gain": 42.0,
        "average_speed": 3.05,
        "max_speed": 4.2,
        "average_heartrate": 152.3,
        "max_heartrate": 171.0,
    }
    payload.update(overrides)
    return payload


def response(status_code: int = 200, json_data=None, headers=None):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else []
    resp.headers = headers or {}
    return resp


class TestParseStravaActivity:
    """Test mapping provider payloads to activities."""

    def test_full_payload(self):
        activity = parse_strava_activity(strava_payload(calories=410))

        assert activity.source_id == 101
        assert activity.activity_type == ActivityType.RUN
        assert activity.distance_meters == 5500.0
        assert activity.moving_time_seconds == 1800
        assert activity.start_timestamp == datetime(2024, 6, 11, 6, 30, tzinfo=timezone.utc)
        assert activity.average_heart_rate_bpm == 152.3
        assert activity.calories_kcal == 410

    def test_calories_fall_back_to_kilojoules(self):
        activity = parse_strava_activity(strava_payload(kilojoules=1000))

        assert activity.calories_kcal == pytest.approx(239.0)

    def test_missing_optional_fields(self):
        payload = strava_payload()
        for key in ("average_heartrate", "max_heartrate", "total_elevation_gain", "max_speed"):
            del payload[key]

        activity = parse_strava_activity(payload)

        assert activity.average_heart_rate_bpm is None
        assert activity.max_heart_rate_bpm is None
        assert activity.calories_kcal is None
        assert activity.max_speed_mps == 0.0

    def test_unsupported_type(self):
        assert parse_strava_activity(strava_payload(activity_type="Yoga")) is None

    def test_malformed_payload(self):
        payload = strava_payload()
        del payload["distance"]

        assert parse_strava_activity(payload) is None


class TestStravaClient:
    """Test HTTP handling."""

    def test_list_activities(self, strava_config):
        session = Mock(headers={})
        session.get.return_value = response(200, [strava_payload()])
        client = StravaClient("token-abc", strava_config, session=session)

        result = client.list_activities(after=NOW, page=2, per_page=50)

        assert result == [strava_payload()]
        assert session.headers["Authorization"] == "Bearer token-abc"
        args, kwargs = session.get.call_args
        assert args[0] == "https://strava.test/api/v3/athlete/activities"
        assert kwargs["params"] == {"page": 2, "per_page": 50, "after": int(NOW.timestamp())}
        assert kwargs["timeout"] == strava_config.request_timeout

    def test_rate_limited(self, strava_config):
        session = Mock(headers={})
        session.get.return_value = response(429, headers={"Retry-After": "900"})
        client = StravaClient("token", strava_config, session=session)

        with pytest.raises(RateLimitError) as exc_info:
            client.list_activities()

        assert exc_info.value.retryable is True
        assert exc_info.value.retry_after == 900

    def test_token_expired(self, strava_config):
        session = Mock(headers={})
        session.get.return_value = response(401)
        client = StravaClient("token", strava_config, session=session)

        with pytest.raises(AuthExpiredError):
            client.list_activities()

    @pytest.mark.parametrize("status,retryable", [(404, False), (503, True)])
    def test_other_http_errors(self, strava_config, status, retryable):
        session = Mock(headers={})
        session.get.return_value = response(status)
        client = StravaClient("token", strava_config, session=session)

        with pytest.raises(ActivitySourceError) as exc_info:
            client.list_activities()

        assert exc_info.value.retryable is retryable

    def test_connection_error_becomes_source_error(self, strava_config):
        session = Mock(headers={})
        session.get.side_effect = requests.ConnectionError("boom")
        client = StravaClient("token", strava_config, session=session)

        with pytest.raises(ActivitySourceError) as exc_info:
            client.list_activities()

        assert exc_info.value.retryable is True
        assert session.get.call_count == strava_config.max_attempts


class TestActivitySync:
    """Test storing fetched activities."""

    def test_sync_stores_only_activities_matching_a_goal(self, strava_config):
        client = Mock()
        client.list_activities.return_value = [
            strava_payload(1, "Run"),
            strava_payload(2, "Swim"),
            strava_payload(3, "Yoga"),
        ]
        storage = InMemoryStorage()
        service = ActivitySyncService(storage, strava_config)

        result = service.sync("u1", client, [make_goal("a", type_filter="Run")], NOW)

        assert result.synced == 1
        assert result.fetched == 3
        assert result.has_more is False
        assert [a.source_id for a in storage.load_activities("u1")] == [1]

    def test_resync_is_idempotent(self, strava_config):
        client = Mock()
        client.list_activities.return_value = [strava_payload(1), strava_payload(2)]
        storage = InMemoryStorage()
        service = ActivitySyncService(storage, strava_config)

        service.sync("u1", client, [make_goal("a")], NOW)
        service.sync("u1", client, [make_goal("a")], NOW)

        assert len(storage.load_activities("u1")) == 2

    def test_sync_page_reports_more(self, strava_config):
        client = Mock()
        client.list_activities.return_value = [strava_payload(i) for i in range(1, 6)]
        service = ActivitySyncService(InMemoryStorage(), strava_config)

        result = service.sync_page("u1", client, [make_goal("a")], page=3, per_page=5)

        client.list_activities.assert_called_once_with(page=3, per_page=5)
        assert result.has_more is True
        assert result.synced == 5

    def test_inactive_goals_do_not_attract_activities(self, strava_config):
        client = Mock()
        client.list_activities.return_value = [strava_payload(1)]
        storage = InMemoryStorage()

        result = ActivitySyncService(storage, strava_config).sync(
            "u1", client, [make_goal("a", is_active=False)], NOW)

        assert result.synced == 0


class TestWebhooks:
    """Test push events and the subscription handshake."""

    def test_verify_subscription(self):
        assert verify_subscription("subscribe", "test-token", "abc", "test-token") == {"hub.challenge": "abc"}
        assert verify_subscription("subscribe", "wrong", "abc", "test-token") is None
        assert verify_subscription("unsubscribe", "test-token", "abc", "test-token") is None

    def test_activity_delete(self):
        storage = InMemoryStorage()
        storage.upsert_activity("u1", make_activity(55))

        action = handle_webhook_event(
            {"object_type": "activity", "aspect_type": "delete", "object_id": 55, "owner_id": 9}, storage)

        assert action == WebhookAction.ACTIVITY_DELETED
        assert storage.load_activities("u1") == []

    def test_deauthorization_purges_user(self):
        storage = InMemoryStorage()
        storage.upsert_activity("user-9", make_activity(1))
        storage.save_goal("user-9", make_goal("a"))

        action = handle_webhook_event(
            {"object_type": "athlete", "aspect_type": "update", "object_id": 9, "owner_id": 9,
             "updates": {"authorized": "false"}},
            storage,
            resolve_user=lambda athlete_id: f"user-{athlete_id}",
        )

        assert action == WebhookAction.USER_PURGED
        assert storage.load_activities("user-9") == []
        assert storage.load_goals("user-9") == []

    def test_other_events_ignored(self):
        storage = InMemoryStorage()
        storage.upsert_activity("9", make_activity(1))

        for event in (
            {"object_type": "activity", "aspect_type": "create", "object_id": 2, "owner_id": 9},
            {"object_type": "athlete", "aspect_type": "update", "object_id": 9, "owner_id": 9,
             "updates": {"title": "new name"}},
        ):
            assert handle_webhook_event(event, storage) == WebhookAction.IGNORED

        assert len(storage.load_activities("9")) == 1
