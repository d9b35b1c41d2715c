"""Non-blocking Berkeley socket operations driven by a poll-based scheduler."""

__version__ = "0.1.0"