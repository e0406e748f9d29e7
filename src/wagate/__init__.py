"""HTTP gateway for a single chat-network session."""

__version__ = "0.1.0"
