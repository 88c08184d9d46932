"""
Storage layer: canonical records, document store adapters and the
idempotent upsert repositories built on them.
"""
