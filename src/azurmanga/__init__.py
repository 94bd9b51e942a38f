"""azurmanga: a Discord bot serving random Azur Lane one-panel manga strips."""

__version__ = "0.1.0"
