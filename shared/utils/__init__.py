"""
Utilities module: Exceptions.
"""

from shared.utils.exceptions import (
    RealtimeClientError,
    InvalidTransitionError,
    FrameDecodeError,
    ProfileFetchError,
)

__all__ = [
    "RealtimeClientError",
    "InvalidTransitionError",
    "FrameDecodeError",
    "ProfileFetchError",
]
