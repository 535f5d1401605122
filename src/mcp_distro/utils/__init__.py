"""Download and filesystem helpers."""
