"""Round-trip canary for the Showdown protocol codec."""

__version__ = "0.1.0"
