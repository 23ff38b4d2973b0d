"""Pipeline stages: normalize, substitute, compose, evict, pool, distribute.

Each stage exposes a small, pure function API and is driven by the runtime
configuration (`delimiter`, `max_length`, `bucket_names`).
"""
