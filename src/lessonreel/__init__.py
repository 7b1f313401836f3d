"""Turn textbook excerpts into short narrated lesson videos."""

__version__ = "0.1.0"
