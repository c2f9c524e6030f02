"""
Broadcast hub package — fan-out of new transactions, alerts and analytics
updates to live subscribers, with bounded per-subscriber buffering.
"""

from backend_hyperchain.broadcast.hub import (
    ALL_TOPICS,
    BroadcastEvent,
    BroadcastHub,
    Subscription,
    Topic,
)

__all__ = [
    "ALL_TOPICS",
    "BroadcastEvent",
    "BroadcastHub",
    "Subscription",
    "Topic",
]
