"""DeepSearch - search-grounded streaming reports."""

__version__ = "0.1.0"
