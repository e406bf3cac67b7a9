"""
Sync Package

Watermark tracking, pagination, upsert sink and the run orchestrator.
"""
