"""Direct message store: durable one-to-one messages with read state."""

__version__ = "0.1.0"
