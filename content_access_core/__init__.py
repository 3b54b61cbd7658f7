"""Access grants and signed-URL attachment transfers for content targets."""

__version__ = "0.1.0"
