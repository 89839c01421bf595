"""
Realtime notification client.

Keeps one Pusher-protocol WebSocket connection open for a user, subscribes
the settings and per-user notification channels, and hands inbound events
to the host application's sinks.
"""
