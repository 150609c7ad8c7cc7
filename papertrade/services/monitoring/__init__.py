"""Read-only views over trading state."""
