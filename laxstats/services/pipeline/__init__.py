"""Ingestion pipeline: hashing, normalization, loading and identity resolution."""
