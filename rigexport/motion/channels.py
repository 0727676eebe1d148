"""Per-bone animation channels

A channel is a per-frame time series for one bone. Vector channels hold
translation components, Euler angles or the rotation quaternion; bit
channels hold visibility and step-motion flags. A channel whose every
frame equals its default is empty and is never handed to a serializer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union
import numpy as np


# Squared distance below IDENTITY_TOLERANCE ** 2 counts as the identity value
IDENTITY_TOLERANCE = 0.00005


class ChannelType(Enum):
    """Vector channel kinds."""
    X = "x"
    Y = "y"
    Z = "z"
    XR = "xr"
    YR = "yr"
    ZR = "zr"
    Q = "q"

    @property
    def identity(self) -> np.ndarray:
        if self is ChannelType.Q:
            return np.array([1.0, 0.0, 0.0, 0.0])
        return np.array([0.0])

    @property
    def vector_len(self) -> int:
        return len(self.identity)


class BitChannelType(Enum):
    """Bit channel kinds."""
    VIS = "vis"
    STEP = "step"

    @property
    def default_value(self) -> bool:
        return self is BitChannelType.VIS


class VectorChannel:
    """Frames of fixed-length vectors for one bone."""

    def __init__(
        self,
        pivot: int,
        channel_type: ChannelType,
        num_frames: int,
        tolerance: float = IDENTITY_TOLERANCE
    ):
        self.pivot = pivot
        self.type = channel_type
        self.num_frames = num_frames
        self.identity = channel_type.identity
        self.tolerance = tolerance

        self.data = np.tile(self.identity, (num_frames, 1))
        self.dont_care = np.zeros(num_frames, dtype=bool)

    @property
    def vector_len(self) -> int:
        return self.data.shape[1]

    def set_vector(self, frame: int, vector) -> None:
        self.data[frame] = np.asarray(vector, dtype=np.float64).reshape(self.vector_len)

    def get_vector(self, frame: int) -> np.ndarray:
        return self.data[frame].copy()

    def set_values(self, values) -> None:
        """Replace every frame at once from an ``(num_frames, vector_len)`` array."""
        self.data[:] = np.asarray(values, dtype=np.float64).reshape(self.num_frames, self.vector_len)

    def _identity_mask(self) -> np.ndarray:
        dist = np.sum((self.data - self.identity) ** 2, axis=1)
        return dist < self.tolerance * self.tolerance

    def is_identity(self, frame: int) -> bool:
        vec = self.data[frame]
        return float(np.sum((vec - self.identity) ** 2)) < self.tolerance * self.tolerance

    @property
    def is_empty(self) -> bool:
        return bool(np.all(self._identity_mask()))

    def active_range(self) -> Optional[Tuple[int, int]]:
        """First and last frame that differ from identity, or None when empty."""
        active = np.flatnonzero(~self._identity_mask())
        if len(active) == 0:
            return None
        return int(active[0]), int(active[-1])

    def clear_invisible_data(self, vis: "BitChannel") -> None:
        """Hold the first value of each invisible span across the span.

        The held frames are flagged don't-care: their values carry no
        meaning and an encoder may store whatever compresses best.
        """
        held: Optional[np.ndarray] = None
        for frame in range(self.num_frames):
            if vis.get_bit(frame):
                held = None
                continue
            if held is None:
                held = self.data[frame].copy()
            else:
                self.data[frame] = held
            self.dont_care[frame] = True

    def to_dict(self) -> dict:
        return {
            "pivot": self.pivot,
            "type": self.type.value,
            "vector_len": self.vector_len,
            "frame_count": self.num_frames,
            "data": self.data.tolist(),
            "dont_care": self.dont_care.tolist(),
        }

    def __repr__(self) -> str:
        return f"VectorChannel(pivot={self.pivot}, type={self.type.value}, frames={self.num_frames})"


class BitChannel:
    """One flag per frame for one bone."""

    def __init__(self, pivot: int, channel_type: BitChannelType, num_frames: int):
        self.pivot = pivot
        self.type = channel_type
        self.num_frames = num_frames
        self.default_value = channel_type.default_value
        self.bits = np.full(num_frames, self.default_value, dtype=bool)

    def set_bit(self, frame: int, value: bool) -> None:
        self.bits[frame] = bool(value)

    def get_bit(self, frame: int) -> bool:
        return bool(self.bits[frame])

    def set_values(self, values) -> None:
        self.bits[:] = np.asarray(values, dtype=bool).reshape(self.num_frames)

    @property
    def is_empty(self) -> bool:
        return bool(np.all(self.bits == self.default_value))

    def active_range(self) -> Optional[Tuple[int, int]]:
        active = np.flatnonzero(self.bits != self.default_value)
        if len(active) == 0:
            return None
        return int(active[0]), int(active[-1])

    def to_dict(self) -> dict:
        return {
            "pivot": self.pivot,
            "type": self.type.value,
            "frame_count": self.num_frames,
            "default": self.default_value,
            "bits": self.bits.tolist(),
        }

    def __repr__(self) -> str:
        return f"BitChannel(pivot={self.pivot}, type={self.type.value}, frames={self.num_frames})"


Channel = Union[VectorChannel, BitChannel]


def is_channel_empty(channel: Channel) -> bool:
    """True when a channel holds only its default value and should not be saved."""
    return channel.is_empty


# Channels that are blanked while a bone is invisible
CLEARABLE_CHANNELS = (ChannelType.X, ChannelType.Y, ChannelType.Z, ChannelType.Q)


@dataclass
class BoneChannels:
    """All channels of one valid bone."""
    pivot: int
    name: str
    vectors: Dict[ChannelType, VectorChannel]
    visibility: BitChannel
    step: BitChannel

    @classmethod
    def allocate(
        cls,
        pivot: int,
        name: str,
        num_frames: int,
        tolerance: float = IDENTITY_TOLERANCE
    ) -> "BoneChannels":
        vectors = {
            channel_type: VectorChannel(pivot, channel_type, num_frames, tolerance)
            for channel_type in ChannelType
        }
        return cls(
            pivot=pivot,
            name=name,
            vectors=vectors,
            visibility=BitChannel(pivot, BitChannelType.VIS, num_frames),
            step=BitChannel(pivot, BitChannelType.STEP, num_frames),
        )

    def __getitem__(self, channel_type: Union[ChannelType, BitChannelType]) -> Channel:
        if channel_type is BitChannelType.VIS:
            return self.visibility
        if channel_type is BitChannelType.STEP:
            return self.step
        return self.vectors[channel_type]

    @property
    def position(self) -> np.ndarray:
        """``(num_frames, 3)`` translation samples."""
        return np.hstack([self.vectors[t].data for t in (ChannelType.X, ChannelType.Y, ChannelType.Z)])

    @property
    def rotation(self) -> np.ndarray:
        """``(num_frames, 4)`` quaternion samples."""
        return self.vectors[ChannelType.Q].data.copy()

    @property
    def euler(self) -> np.ndarray:
        """``(num_frames, 3)`` continuity-corrected Euler angles."""
        return np.hstack([self.vectors[t].data for t in (ChannelType.XR, ChannelType.YR, ChannelType.ZR)])

    @property
    def visible(self) -> np.ndarray:
        return self.visibility.bits.copy()

    @property
    def step_motion(self) -> np.ndarray:
        return self.step.bits.copy()

    def channels(self) -> List[Channel]:
        return list(self.vectors.values()) + [self.visibility, self.step]

    def non_empty_channels(self) -> List[Channel]:
        return [channel for channel in self.channels() if not is_channel_empty(channel)]

    def clear_invisible_data(self) -> bool:
        """Apply the don't-care fill; returns False when the bone is never hidden."""
        if is_channel_empty(self.visibility):
            return False
        for channel_type in CLEARABLE_CHANNELS:
            self.vectors[channel_type].clear_invisible_data(self.visibility)
        return True

    def to_dict(self, include_empty: bool = False) -> dict:
        channels = self.channels() if include_empty else self.non_empty_channels()
        return {
            "bone_index": self.pivot,
            "name": self.name,
            "frame_count": self.visibility.num_frames,
            "channels": [channel.to_dict() for channel in channels],
        }


@dataclass
class AnimationHeader:
    """Identifying record of an extracted animation."""
    name: str
    hierarchy_name: str
    num_frames: int
    frame_rate: float
    start_frame: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "hierarchy_name": self.hierarchy_name,
            "num_frames": self.num_frames,
            "frame_rate": self.frame_rate,
            "start_frame": self.start_frame,
        }


@dataclass
class ChannelSet:
    """Channels of every valid bone over one frame range, keyed by bone index."""
    header: AnimationHeader
    bones: Dict[int, BoneChannels] = field(default_factory=dict)

    @property
    def num_frames(self) -> int:
        return self.header.num_frames

    def __len__(self) -> int:
        return len(self.bones)

    def __iter__(self) -> Iterator[BoneChannels]:
        return iter(self.bones[pivot] for pivot in sorted(self.bones))

    def __contains__(self, pivot: int) -> bool:
        return pivot in self.bones

    def __getitem__(self, pivot: int) -> BoneChannels:
        return self.bones[pivot]

    def find(self, name: str) -> Optional[BoneChannels]:
        for bone in self.bones.values():
            if bone.name == name:
                return bone
        return None

    def non_empty_channels(self) -> List[Channel]:
        return [channel for bone in self for channel in bone.non_empty_channels()]

    def to_dict(self, include_empty: bool = False) -> dict:
        return {
            "header": self.header.to_dict(),
            "bones": [bone.to_dict(include_empty) for bone in self],
        }
