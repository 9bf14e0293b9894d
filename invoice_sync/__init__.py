"""Invoice attachment ingestion from connected mailboxes."""

__version__ = "1.0.0"
