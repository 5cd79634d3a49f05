"""Data enrichment - column-mapping sync from external sources into canonical entities."""

__version__ = "0.1.0"
