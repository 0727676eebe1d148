"""In-memory keyframed scene graph.

Implements the scene interface for tools, tests and the driver script.
Nodes carry keyframed local position, rotation, scale and visibility
tracks; a node's absolute transform is its parent's absolute transform
composed with its local ``T @ R @ S``.

Scene descriptions are plain dicts, usually loaded from YAML::

    ticks_per_frame: 1
    nodes:
      - name: Root
        position: [0, 0, 0]
        children:
          - name: Child
            position:
              interpolation: step
              keys: [[0, [0, 1, 0]], [10, [0, 2, 0]]]
            rotation:
              keys: [[0, {euler: [0, 0, 0]}], [10, {euler: [90, 0, 0]}]]

Rotation values are ``(w, x, y, z)`` quaternions, ``{euler: [x, y, z]}``
rotating-XYZ angles in degrees, or ``{axis: [x, y, z], angle: a}`` with
the angle in degrees.
"""

from pathlib import Path
from typing import Any, List, Optional, Sequence, Union
import numpy as np
import yaml

from ..core import euler
from ..core.logging import get_logger
from ..core.transforms import (
    IDENTITY_QUATERNION,
    compose,
    make_transform,
    normalize_quaternion,
    quaternion_from_axis_angle,
    quaternion_from_matrix,
    quaternion_slerp,
    quaternion_to_matrix,
)
from .node import Scene, SceneNode


INTERPOLATIONS = ("linear", "step")


class KeyframeTrack:
    """Keyframed vector values with linear or step interpolation.

    Sampling before the first key or after the last key holds the end
    value. A ``step`` track holds each key until the next one.
    """

    def __init__(self, times, values, interpolation: str = "linear"):
        times = np.asarray(times, dtype=np.float64).reshape(-1)
        if len(times) == 0:
            raise ValueError("A track needs at least one key")
        if interpolation not in INTERPOLATIONS:
            raise ValueError(f"Unknown interpolation: {interpolation!r}")

        values = np.asarray(values, dtype=np.float64).reshape(len(times), -1)
        order = np.argsort(times, kind="stable")

        self.times = times[order]
        self.values = self._prepare(values[order])
        self.interpolation = interpolation

    @classmethod
    def constant(cls, value) -> "KeyframeTrack":
        return cls([0.0], [value])

    def _prepare(self, values: np.ndarray) -> np.ndarray:
        return values

    def _interpolate(self, a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
        return a + (b - a) * t

    def sample(self, time: float) -> np.ndarray:
        times = self.times
        if time <= times[0]:
            return self.values[0].copy()
        if time >= times[-1]:
            return self.values[-1].copy()

        hi = int(np.searchsorted(times, time, side="right"))
        lo = hi - 1
        if self.interpolation == "step":
            return self.values[lo].copy()

        t = (time - times[lo]) / (times[hi] - times[lo])
        return self._interpolate(self.values[lo], self.values[hi], t)

    def __len__(self) -> int:
        return len(self.times)


class RotationTrack(KeyframeTrack):
    """Quaternion keys, interpolated along the shorter arc."""

    def _prepare(self, values: np.ndarray) -> np.ndarray:
        if values.shape[1] != 4:
            raise ValueError(f"Rotation keys must be quaternions, got width {values.shape[1]}")
        return np.array([normalize_quaternion(q) for q in values])

    def _interpolate(self, a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
        return quaternion_slerp(a, b, t)


TrackLike = Union[KeyframeTrack, Sequence[float], float, None]


def _as_track(value: TrackLike, default, rotation: bool = False) -> KeyframeTrack:
    if isinstance(value, KeyframeTrack):
        return value
    if value is None:
        value = default
    if rotation:
        return RotationTrack([0.0], [value])
    return KeyframeTrack.constant(value)


class MemoryNode(SceneNode):
    """Scene node backed by keyframe tracks."""

    def __init__(
        self,
        name: str,
        parent: Optional["MemoryNode"] = None,
        position: TrackLike = None,
        rotation: TrackLike = None,
        scale: TrackLike = None,
        visibility: TrackLike = None,
        hidden: bool = False,
        bone: bool = True,
        mesh: bool = False,
        null: bool = False,
        origin: bool = False,
    ):
        self._name = name
        self._parent: Optional[MemoryNode] = None
        self._children: List[MemoryNode] = []

        self.position = _as_track(position, [0.0, 0.0, 0.0])
        self.rotation = _as_track(rotation, IDENTITY_QUATERNION, rotation=True)
        self.scale = _as_track(scale, [1.0, 1.0, 1.0])
        self.visibility_track = _as_track(visibility, 1.0)

        self._hidden = hidden
        self._bone = bone
        self._mesh = mesh
        self._null = null
        self._origin = origin

        if parent is not None:
            parent.add_child(self)

    def add_child(self, child: "MemoryNode") -> "MemoryNode":
        child._parent = self
        self._children.append(child)
        return child

    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> Optional["MemoryNode"]:
        return self._parent

    @property
    def children(self) -> List["MemoryNode"]:
        return list(self._children)

    @property
    def is_hidden(self) -> bool:
        return self._hidden

    @property
    def is_bone(self) -> bool:
        return self._bone

    @property
    def is_normal_mesh(self) -> bool:
        return self._mesh

    @property
    def is_null_object(self) -> bool:
        return self._null

    @property
    def is_origin(self) -> bool:
        return self._origin

    def local_transform(self, time: float) -> np.ndarray:
        rotation = quaternion_to_matrix(self.rotation.sample(time))
        scale = self.scale.sample(time)
        return make_transform(rotation * scale, self.position.sample(time))

    def node_transform(self, time: float) -> np.ndarray:
        local = self.local_transform(time)
        if self._parent is None:
            return local
        return compose(self._parent.node_transform(time), local)

    def visibility(self, time: float) -> float:
        return float(self.visibility_track.sample(time)[0])

    def position_controller_value(self, time: float) -> Optional[np.ndarray]:
        return self.position.sample(time)

    def rotation_controller_value(self, time: float) -> Optional[np.ndarray]:
        return self.rotation.sample(time)


class MemoryScene(Scene):
    """A list of root nodes on a uniform timeline."""

    def __init__(
        self,
        roots: Optional[Sequence[MemoryNode]] = None,
        ticks_per_frame: float = 1.0,
        frame_rate: float = 30.0,
    ):
        if ticks_per_frame <= 0:
            raise ValueError("ticks_per_frame must be positive")
        self._roots: List[MemoryNode] = list(roots or [])
        self.ticks_per_frame = float(ticks_per_frame)
        self.frame_rate = float(frame_rate)

    @property
    def roots(self) -> List[MemoryNode]:
        return list(self._roots)

    def add_root(self, node: MemoryNode) -> MemoryNode:
        self._roots.append(node)
        return node

    def frame_time(self, frame: int) -> float:
        return frame * self.ticks_per_frame

    @classmethod
    def from_dict(cls, data: dict) -> "MemoryScene":
        if "scene" in data:
            data = data["scene"]

        scene = cls(
            ticks_per_frame=data.get("ticks_per_frame", 1.0),
            frame_rate=data.get("frame_rate", 30.0),
        )
        for node_data in data.get("nodes", []):
            scene.add_root(_parse_node(node_data, None))

        logger = get_logger("scene.memory")
        logger.debug(f"Loaded scene with {sum(1 for _ in scene.walk())} nodes")
        return scene


def _rotation_value(value: Any) -> np.ndarray:
    if isinstance(value, dict) and "euler" in value:
        angles = np.radians(np.asarray(value["euler"], dtype=np.float64))
        return quaternion_from_matrix(euler.compose(*angles)[:, :3])
    if isinstance(value, dict) and "axis" in value:
        return quaternion_from_axis_angle(value["axis"], np.radians(value.get("angle", 0.0)))

    q = np.asarray(value, dtype=np.float64).reshape(-1)
    if q.shape != (4,):
        raise ValueError(
            f"Rotation must be a quaternion, {{euler: [x, y, z]}} "
            f"or {{axis: [x, y, z], angle: a}}, got {value!r}"
        )
    return q


def _parse_track(entry: Any, rotation: bool = False, interpolation: str = "linear") -> Optional[KeyframeTrack]:
    if entry is None:
        return None

    if isinstance(entry, dict) and "keys" in entry:
        keys = entry["keys"]
        interpolation = entry.get("interpolation", interpolation)
        times = [key[0] for key in keys]
        values = [key[1] for key in keys]
    else:
        times = [0.0]
        values = [entry]

    if rotation:
        return RotationTrack(times, [_rotation_value(v) for v in values], interpolation)
    return KeyframeTrack(times, values, interpolation)


def _parse_node(data: dict, parent: Optional[MemoryNode]) -> MemoryNode:
    if "name" not in data:
        raise ValueError(f"Scene node without a name: {data!r}")

    node = MemoryNode(
        data["name"],
        parent=parent,
        position=_parse_track(data.get("position")),
        rotation=_parse_track(data.get("rotation"), rotation=True),
        scale=_parse_track(data.get("scale")),
        visibility=_parse_track(data.get("visibility"), interpolation="step"),
        hidden=bool(data.get("hidden", False)),
        bone=bool(data.get("bone", True)),
        mesh=bool(data.get("mesh", False)),
        null=bool(data.get("null", False)),
        origin=bool(data.get("origin", False)),
    )
    for child in data.get("children", []):
        _parse_node(child, node)
    return node


def load_scene(path: Union[str, Path]) -> MemoryScene:
    """Load a scene description from a YAML file."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return MemoryScene.from_dict(data)
