"""Okazje+ multi-vendor product ingestion."""

__version__ = "0.1.0"
