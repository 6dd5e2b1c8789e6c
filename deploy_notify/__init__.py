"""Deploy event notifications for completed CI jobs."""

__version__ = "1.0.0"
