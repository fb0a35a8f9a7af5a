"""Keep content platform records and a git repository in sync."""

__version__ = "0.1.0"
