"""Discord audio queue bot: per-guild playback queues, track resolution and search sessions."""

__version__ = "0.1.0"
