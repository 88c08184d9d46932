"""
Ingestion layer: feed ports and adapters, the known-issue registry and the
update tasks that land canonical rows through the upsert layer.
"""
