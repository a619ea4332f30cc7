"""Fixed texts the bot sends."""
