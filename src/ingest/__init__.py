"""Streaming ingestion pipeline.

This package decodes JSON values from a byte stream, sequences and
batches them, and dispatches batches to a bounded insert pool.
"""
