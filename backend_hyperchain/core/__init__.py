"""
Core utilities — domain exceptions and cross-cutting concerns shared by
ingestion, analysis engine, store and API server.
"""
