"""Market data and execution services."""
