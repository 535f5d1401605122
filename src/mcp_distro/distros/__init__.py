"""Distribution catalog, installation and launch."""
