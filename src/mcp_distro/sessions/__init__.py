"""Process sessions."""
