"""Core pipeline: tiling, queries, upstream client, caches, and conversion."""
