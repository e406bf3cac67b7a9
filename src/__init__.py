"""
IDX Listing Sync - Core Package

Pulls paginated listing records from a RESO/OData IDX feed and reconciles
them into the relational ``properties`` table.
"""

__version__ = "0.1.0"
