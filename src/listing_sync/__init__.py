"""
Listing Sync

Incremental and backfill synchronization of IDX listings into the database.
"""
