"""Core systems - config, logging, timing, transforms, skeleton"""

from .config import Config
from .logging import setup_logging, get_logger, log_stage
from .timing import FrameTimer, ProgressMeter
from .errors import (
    ExportError,
    DuplicateBoneError,
    MissingBoneError,
    ExtractionCancelled,
)
from .euler import (
    Axis,
    Parity,
    Repeat,
    Frame,
    EulerOrder,
    ORDERS,
    XYZ_ROTATING,
    order_from_name,
)
from .skeleton import Bone, Skeleton, normalize_bone_name, NAME_LENGTH

__all__ = [
    "Config", "setup_logging", "get_logger", "log_stage", "FrameTimer", "ProgressMeter",
    "ExportError", "DuplicateBoneError", "MissingBoneError", "ExtractionCancelled",
    "Axis", "Parity", "Repeat", "Frame", "EulerOrder", "ORDERS", "XYZ_ROTATING",
    "order_from_name",
    "Bone", "Skeleton", "normalize_bone_name", "NAME_LENGTH",
]
