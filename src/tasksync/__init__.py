"""tasksync: per-user to-do list kept in live sync with a remote document store."""

__version__ = "0.1.0"
