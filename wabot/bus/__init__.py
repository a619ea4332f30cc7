"""Message event types."""
