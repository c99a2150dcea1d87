"""docfolio: organize, deduplicate, consolidate and search document folders."""

__version__ = "0.1.0"
