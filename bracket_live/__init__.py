"""Live single-elimination tournament bracket with a realtime channel."""

__version__ = "0.1.0"
