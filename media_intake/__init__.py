"""Content-addressed media intake and retrieval in front of an object bucket."""

__version__ = "0.1.0"
