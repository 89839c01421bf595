"""
Channel subscription.
"""

from ws_client.components.channels.subscriber import Channel, ChannelKind, ChannelSubscriber

__all__ = [
    "Channel",
    "ChannelKind",
    "ChannelSubscriber",
]
