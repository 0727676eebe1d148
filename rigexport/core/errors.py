"""Export error types.

Every error here aborts the whole build or extraction; callers never
receive a partially built skeleton or channel set.
"""

from typing import Optional


class ExportError(Exception):
    """Base exception for skeleton and motion export failures."""
    pass


class DuplicateBoneError(ExportError):
    """Two admitted nodes normalize to the same bone name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Bones with duplicate names found! Duplicated name: {name}")


class MissingBoneError(ExportError):
    """A bone is absent from the skeleton used as a fixup tree."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Incompatible base pose! Missing bone: {name}")


class ExtractionCancelled(ExportError):
    """The caller asked for the extraction to stop."""

    def __init__(self, frame: Optional[int] = None):
        self.frame = frame
        if frame is None:
            message = "Motion extraction cancelled"
        else:
            message = f"Motion extraction cancelled at frame {frame}"
        super().__init__(message)
