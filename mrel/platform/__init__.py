"""Process execution and filesystem helpers."""
