"""Ingestion and processing pipelines."""
