from .base import ChannelAdapter, ChannelClient, format_outcome

__all__ = ["ChannelAdapter", "ChannelClient", "format_outcome"]
