"""Command classification and dispatch."""

from wabot.router.commands import Classification, Command, classify
from wabot.router.router import CommandRouter

__all__ = ["Classification", "Command", "CommandRouter", "classify"]
