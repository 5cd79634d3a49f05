"""Column-mapping sync engine: transforms, matching, preview and apply."""
