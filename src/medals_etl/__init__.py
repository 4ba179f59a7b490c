"""Medal-results ingestion: fetch, extract, normalize, dedupe and upsert."""

__version__ = "0.1.0"
