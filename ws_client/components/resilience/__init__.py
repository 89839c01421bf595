"""
Resilience components: reconnect backoff and scheduling.
"""

from ws_client.components.resilience.retry import (
    RetryConfig,
    ReconnectScheduler,
    calculate_backoff_delay,
    create_reconnect_scheduler,
)

__all__ = [
    "RetryConfig",
    "ReconnectScheduler",
    "calculate_backoff_delay",
    "create_reconnect_scheduler",
]
