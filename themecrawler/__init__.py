"""Theme catalog crawler driven by a durable job queue."""

__version__ = "0.1.0"
