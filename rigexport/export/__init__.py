"""Record export module"""

from .records import RecordExporter, load_hierarchy

__all__ = ["RecordExporter", "load_hierarchy"]
