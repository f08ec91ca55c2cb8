"""Retrieval engine: multi-source vector search, context assembly, streamed answers."""
