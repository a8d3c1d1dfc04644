"""
DadCircles-specific database utilities.

Provides collection accessors for the DadCircles application.
"""

from dadcircles.database.collections import (
    get_profiles_collection,
    get_groups_collection,
    ensure_indexes,
)

__all__ = [
    "get_profiles_collection",
    "get_groups_collection",
    "ensure_indexes",
]
