# Live session layer: readiness, change feed and read state
from bitterscan.live.timeouts import call_with_timeout
from bitterscan.live.api_client import DashboardApi, ApiError, AccessDenied, ConflictError
from bitterscan.live.subscription import (
    SubscriptionManager, ChangeFeedError, FeedConfigurationError, backoff_delay,
    DISCONNECTED, CONNECTING, CONNECTED, BACKING_OFF, POLLING
)
from bitterscan.live.readiness import ReadinessCoordinator, Denial
from bitterscan.live.read_state import LocalReadStateCache, ReadStateStore

__all__ = [
    'call_with_timeout',
    'DashboardApi', 'ApiError', 'AccessDenied', 'ConflictError',
    'SubscriptionManager', 'ChangeFeedError', 'FeedConfigurationError', 'backoff_delay',
    'DISCONNECTED', 'CONNECTING', 'CONNECTED', 'BACKING_OFF', 'POLLING',
    'ReadinessCoordinator', 'Denial',
    'LocalReadStateCache', 'ReadStateStore',
]
