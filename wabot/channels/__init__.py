"""Messaging capability interfaces and their implementations."""

from wabot.channels.base import ChatHandle, MessageHandle, MessagingSession

__all__ = ["ChatHandle", "MessageHandle", "MessagingSession"]
