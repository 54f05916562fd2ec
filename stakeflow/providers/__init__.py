"""
Activity providers.
"""

from .strava import (
    StravaClient, ActivitySyncService, SyncResult, WebhookAction,
    parse_strava_activity, handle_webhook_event, verify_subscription
)

__all__ = [
    'StravaClient', 'ActivitySyncService', 'SyncResult', 'WebhookAction',
    'parse_strava_activity', 'handle_webhook_event', 'verify_subscription',
]
