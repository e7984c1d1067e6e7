"""Remote control client for a real-time renderer."""

__version__ = "0.1.0"
