"""
API server package — HTTP/REST and WebSocket interface.

Exposes the query service, the resolve-alert and re-analyze mutations, and
live subscriptions to new transactions, alerts and analytics updates.
"""
