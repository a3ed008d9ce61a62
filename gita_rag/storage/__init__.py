"""Persistence: vector store adapter and ingestion archive."""
