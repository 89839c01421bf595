"""
HTTP collaborators: private channel authorization and profile lookup.
"""

from ws_client.components.auth.channel_auth import AuthResult, ChannelAuthClient
from ws_client.components.auth.profile import ProfileClient
from ws_client.components.auth.schemas import ChannelAuthResponse, ProfileResponse

__all__ = [
    "AuthResult",
    "ChannelAuthClient",
    "ChannelAuthResponse",
    "ProfileClient",
    "ProfileResponse",
]
