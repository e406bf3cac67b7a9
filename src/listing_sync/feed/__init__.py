"""
Feed Package

HTTP access to the IDX listing feed.
"""
from .client import FeedClient

__all__ = ["FeedClient"]
