"""Motion Extractor - per-frame bone motion against a bind pose

For every frame the scene is rebuilt into a transient skeleton using the
bind pose as fixup tree, and each bone's relative transform is compared
with its bind-pose relative transform. Frames are processed strictly in
order: the Euler continuity correction of frame ``f`` depends on the
corrected angles of frame ``f - 1``.
"""

from dataclasses import dataclass
from typing import Callable, Optional
import numpy as np

from ..core import get_logger, Config, FrameTimer, ProgressMeter
from ..core.errors import ExportError, ExtractionCancelled
from ..core.euler import XYZ_ROTATING, decompose, equivalent_angles
from ..core.skeleton import Skeleton
from ..core.transforms import (
    cleanup_orthogonal_matrix,
    compose,
    decompose_transform,
    identity_transform,
    inverse_transform,
)
from ..scene.node import Scene, SceneNode
from .channels import (
    IDENTITY_TOLERANCE,
    AnimationHeader,
    BoneChannels,
    ChannelSet,
    ChannelType,
    is_channel_empty,
)
from .hierarchy import FixupMode, HierarchyBuilder, Roots


def unwrap_angles(angles, reference) -> np.ndarray:
    """Shift each angle by whole turns to lie within π of ``reference``.

    Angles already within π are returned unchanged.
    """
    angles = np.asarray(angles, dtype=np.float64)
    reference = np.asarray(reference, dtype=np.float64)
    turns = np.round((reference - angles) / (2 * np.pi))
    return angles + 2 * np.pi * turns


def correct_continuity(angles, previous, unwrap: bool = True) -> np.ndarray:
    """Pick the Euler triple closest to the previous frame's triple.

    Candidates are the raw triple and its periodic equivalent, each
    optionally unwrapped toward ``previous``. Ties keep the raw triple.

    With ``unwrap=False`` only the two candidates themselves are compared,
    which cannot follow a rotation past ±180°.
    """
    raw = np.asarray(angles, dtype=np.float64)
    alt = equivalent_angles(raw)
    previous = np.asarray(previous, dtype=np.float64)

    if unwrap:
        raw = unwrap_angles(raw, previous)
        alt = unwrap_angles(alt, previous)

    mag0 = float(np.sum((raw - previous) ** 2))
    mag1 = float(np.sum((alt - previous) ** 2))
    if mag1 < mag0:
        return alt
    return raw


@dataclass
class MotionBuffers:
    """Working arrays for one extraction, indexed ``[bone, frame]``."""
    motion: np.ndarray  # (B, F, 3, 4)
    euler: np.ndarray  # (B, F, 3)
    visible: np.ndarray  # (B, F)
    step: np.ndarray  # (B, F)
    valid: np.ndarray  # (B,)

    @classmethod
    def allocate(cls, num_bones: int, num_frames: int) -> "MotionBuffers":
        try:
            motion = np.empty((num_bones, num_frames, 3, 4))
            motion[:] = identity_transform()
            return cls(
                motion=motion,
                euler=np.zeros((num_bones, num_frames, 3)),
                visible=np.ones((num_bones, num_frames), dtype=bool),
                step=np.zeros((num_bones, num_frames), dtype=bool),
                valid=np.zeros(num_bones, dtype=bool),
            )
        except MemoryError as e:
            raise ExportError(
                f"Out of memory allocating motion for {num_bones} bones x {num_frames} frames"
            ) from e


class MotionExtractor:
    """
    Extract per-bone animation channels from a scene.

    Features:
    - Per-frame motion relative to the bind pose
    - Euler continuity correction across frames
    - Step (binary) movement detection from raw controller samples
    - Visibility tracking with optional don't-care fill
    - Elision of channels that never leave their default
    """

    def __init__(self, config: Optional[Config] = None, builder: Optional[HierarchyBuilder] = None):
        self.logger = get_logger("motion.extract")
        self.config = config or Config()

        motion_config = self.config.motion

        self._start_frame = int(motion_config.get("start_frame", 0))
        self._end_frame = int(motion_config.get("end_frame", 0))
        self._frame_rate = float(motion_config.get("frame_rate", 30))
        self._clear_invisible = bool(motion_config.get("clear_invisible_data", True))
        self._unwrap = bool(motion_config.get("continuity_unwrap", True))
        self._tolerance = float(motion_config.get("identity_tolerance", IDENTITY_TOLERANCE))

        self.builder = builder or HierarchyBuilder(self.config)
        self.timer = FrameTimer()

    def extract(
        self,
        scene: Scene,
        bind_pose: Skeleton,
        start_frame: Optional[int] = None,
        end_frame: Optional[int] = None,
        origin_offset: Optional[np.ndarray] = None,
        roots: Optional[Roots] = None,
        name: str = "",
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> ChannelSet:
        """
        Extract channels for frames ``start_frame..end_frame`` inclusive.

        Args:
            scene: Scene to sample
            bind_pose: Skeleton the motion is measured against
            start_frame: First frame (config ``motion.start_frame`` by default)
            end_frame: Last frame (config ``motion.end_frame`` by default)
            origin_offset: World origin transform, as for ``HierarchyBuilder.build``
            roots: Root node or root list; the scene's roots by default
            name: Animation name
            should_cancel: Polled between frames; returning True aborts

        Returns:
            ChannelSet of every bone seen in at least one frame

        Raises:
            ExtractionCancelled: ``should_cancel`` returned True
            MissingBoneError: A frame contains a bone the bind pose lacks
            ExportError: The working arrays could not be allocated
        """
        if start_frame is None:
            start_frame = self._start_frame
        if end_frame is None:
            end_frame = self._end_frame
        if end_frame < start_frame:
            raise ValueError(f"Invalid frame range [{start_frame}, {end_frame}]")
        if roots is None:
            roots = scene.roots

        num_frames = end_frame - start_frame + 1
        num_bones = bind_pose.num_nodes

        self.logger.info(
            f"Extracting {name!r}: {num_bones} bones, frames {start_frame}-{end_frame}"
        )

        buffers = MotionBuffers.allocate(num_bones, num_frames)
        progress = ProgressMeter(self.logger, f"Extracting {name or 'motion'}")
        self.timer.reset()

        previous: Optional[np.ndarray] = None
        for offset in range(num_frames):
            frame = start_frame + offset
            if should_cancel is not None and should_cancel():
                self.logger.warning(f"Extraction cancelled at frame {frame}")
                raise ExtractionCancelled(frame)

            self.timer.start()
            previous = self._compute_frame_motion(
                scene, roots, bind_pose, buffers, frame, offset, origin_offset, previous
            )
            self.timer.stop()
            progress.update(offset + 1, num_frames)

        progress.finish()
        self.logger.info(
            f"Extracted {num_frames} frames in {self.timer.total_time:.2f}s "
            f"(avg {self.timer.average_frame_time * 1000:.2f} ms/frame)"
        )

        header = AnimationHeader(
            name=name,
            hierarchy_name=bind_pose.name,
            num_frames=num_frames,
            frame_rate=self._frame_rate,
            start_frame=start_frame,
        )
        return self._assemble(bind_pose, buffers, header)

    def _compute_frame_motion(
        self,
        scene: Scene,
        roots: Roots,
        bind_pose: Skeleton,
        buffers: MotionBuffers,
        frame: int,
        offset: int,
        origin_offset: Optional[np.ndarray],
        previous: Optional[np.ndarray],
    ) -> np.ndarray:
        """Fill one frame of ``buffers``; returns this frame's corrected Euler angles."""
        time = scene.frame_time(frame)
        prev_time = scene.frame_time(frame - 1)

        tree = self.builder.build(
            roots,
            time,
            origin_offset=origin_offset,
            fixup_tree=bind_pose,
            fixup_mode=FixupMode.NONE,
            name=bind_pose.name,
        )

        for tree_index, bone in enumerate(tree.bones):
            bone_index = bind_pose.index_of(bone.name)
            if bone_index == -1:
                continue

            base = bind_pose.relative_transform(bone_index)
            current = tree.relative_transform(tree_index)
            motion = cleanup_orthogonal_matrix(compose(inverse_transform(base), current))
            buffers.motion[bone_index, offset] = motion

            angles = np.array(decompose(motion, XYZ_ROTATING), dtype=np.float64)
            if previous is not None:
                angles = correct_continuity(angles, previous[bone_index], self._unwrap)
            buffers.euler[bone_index, offset] = angles

            node = tree.node(tree_index)
            visible = True if node is None else node.visibility(time) > 0
            buffers.visible[bone_index, offset] = visible

            if node is not None and visible and offset > 0:
                buffers.step[bone_index, offset] = self._detect_step(node, prev_time, time, frame)

            buffers.valid[bone_index] = True

        return buffers.euler[:, offset].copy()

    def _detect_step(self, node: SceneNode, prev_time: float, time: float, frame: int) -> bool:
        """A step is a controller that holds through the midpoint and then jumps."""
        mid_time = (prev_time + time) / 2.0
        samplers = (
            ("translation", node.position_controller_value),
            ("rotation", node.rotation_controller_value),
        )
        for label, sample in samplers:
            s1 = sample(prev_time)
            if s1 is None:
                continue
            s2 = sample(mid_time)
            s3 = sample(time)
            if np.array_equal(s1, s2) and not np.array_equal(s2, s3):
                self.logger.debug(f"Binary movement on {label} of {node.name} at frame {frame}")
                return True
        return False

    def _assemble(self, bind_pose: Skeleton, buffers: MotionBuffers, header: AnimationHeader) -> ChannelSet:
        channel_set = ChannelSet(header=header)
        num_frames = header.num_frames

        for bone_index in range(bind_pose.num_nodes):
            bone_name = bind_pose.node_name(bone_index)
            if not buffers.valid[bone_index]:
                self.logger.info(f"Dropping bone {bone_name}: not present in any frame")
                continue

            channels = BoneChannels.allocate(bone_index, bone_name, num_frames, self._tolerance)

            translations = np.empty((num_frames, 3))
            quaternions = np.empty((num_frames, 4))
            for offset in range(num_frames):
                translation, rotation, _ = decompose_transform(buffers.motion[bone_index, offset])
                translations[offset] = translation
                quaternions[offset] = rotation

            channels.vectors[ChannelType.X].set_values(translations[:, 0])
            channels.vectors[ChannelType.Y].set_values(translations[:, 1])
            channels.vectors[ChannelType.Z].set_values(translations[:, 2])
            channels.vectors[ChannelType.Q].set_values(quaternions)
            channels.vectors[ChannelType.XR].set_values(buffers.euler[bone_index, :, 0])
            channels.vectors[ChannelType.YR].set_values(buffers.euler[bone_index, :, 1])
            channels.vectors[ChannelType.ZR].set_values(buffers.euler[bone_index, :, 2])
            channels.visibility.set_values(buffers.visible[bone_index])
            channels.step.set_values(buffers.step[bone_index])

            if self._clear_invisible and channels.clear_invisible_data():
                self.logger.debug(f"Cleared invisible spans of {bone_name}")

            elided = [c.type.value for c in channels.channels() if is_channel_empty(c)]
            if elided:
                self.logger.debug(f"{bone_name}: empty channels {', '.join(elided)}")

            channel_set.bones[bone_index] = channels

        self.logger.info(f"Assembled channels for {len(channel_set)} of {bind_pose.num_nodes} bones")
        return channel_set
