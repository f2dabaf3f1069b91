"""guildwire: command interpretation and dispatch for guild chat bots."""

__version__ = "0.1.0"
