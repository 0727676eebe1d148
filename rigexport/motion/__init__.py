"""Motion processing module"""

from .hierarchy import HierarchyBuilder, FixupMode, build_skeleton, fixup_matrix
from .channels import (
    ChannelType,
    BitChannelType,
    VectorChannel,
    BitChannel,
    BoneChannels,
    AnimationHeader,
    ChannelSet,
    is_channel_empty,
)
from .extractor import MotionExtractor, correct_continuity

__all__ = [
    "HierarchyBuilder", "FixupMode", "build_skeleton", "fixup_matrix",
    "ChannelType", "BitChannelType", "VectorChannel", "BitChannel",
    "BoneChannels", "AnimationHeader", "ChannelSet", "is_channel_empty",
    "MotionExtractor", "correct_continuity",
]
