"""wabot - command-driven WhatsApp bot."""

__version__ = "0.1.0"
__logo__ = "📲"
