"""FileHub - binary object upload and range-serving service."""

__version__ = "1.0.0"
