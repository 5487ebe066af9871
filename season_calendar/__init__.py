"""Season-based content scheduling calendar service."""

__version__ = "0.1.0"
