"""Flight search service: resilient provider calls behind a Redis cache-aside layer."""

__version__ = "1.0.0"
