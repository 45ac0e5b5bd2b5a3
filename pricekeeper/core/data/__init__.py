"""Data storage and ingestion."""
