"""Skeleton and motion export for hierarchical scene graphs"""

__version__ = "0.1.0"
