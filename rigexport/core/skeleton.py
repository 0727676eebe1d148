"""Bind-pose skeleton data types.

A skeleton is an arena of bones addressed by index. Bones are stored in
pre-order, so every bone's parent has a smaller index, and bone 0 is the
only bone without a parent.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple
import numpy as np

from .transforms import (
    compose,
    identity_transform,
    make_transform,
    quaternion_to_matrix,
)


NAME_LENGTH = 15

_LOD_DIGITS = re.compile(r"\s*[+-]?\d")


def normalize_bone_name(name: str, max_length: int = NAME_LENGTH) -> str:
    """Normalize a node name into a bone name.

    Truncates to ``max_length``, drops a trailing ``.<digits>`` LOD suffix
    or a bare trailing dot, and upper-cases the result.
    """
    name = name[:max_length]
    head, dot, tail = name.rpartition(".")
    if dot and (tail == "" or _LOD_DIGITS.match(tail)):
        name = head
    return name.upper()


def _frozen(values, shape: Tuple[int, ...]) -> np.ndarray:
    arr = np.array(values, dtype=np.float64).reshape(shape)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Bone:
    """One pivot of a skeleton, stored relative to its parent."""
    name: str
    parent_index: int
    translation: np.ndarray  # (3,)
    rotation: np.ndarray  # (4,) quaternion (w, x, y, z)
    euler: np.ndarray  # (3,) rotating XYZ angles, diagnostic
    fixup: np.ndarray  # (3, 4) raw-to-normalized object space correction
    node: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "translation", _frozen(self.translation, (3,)))
        object.__setattr__(self, "rotation", _frozen(self.rotation, (4,)))
        object.__setattr__(self, "euler", _frozen(self.euler, (3,)))
        object.__setattr__(self, "fixup", _frozen(self.fixup, (3, 4)))

    @property
    def is_root(self) -> bool:
        return self.parent_index == -1

    @property
    def relative_transform(self) -> np.ndarray:
        """Transform into the parent's frame rebuilt from translation and rotation."""
        return make_transform(quaternion_to_matrix(self.rotation), self.translation)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "parent_index": self.parent_index,
            "translation": self.translation.tolist(),
            "quaternion": self.rotation.tolist(),
            "euler": self.euler.tolist(),
            "fixup": self.fixup.tolist(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Bone":
        return cls(
            name=data["name"],
            parent_index=int(data["parent_index"]),
            translation=data["translation"],
            rotation=data["quaternion"],
            euler=data.get("euler", [0.0, 0.0, 0.0]),
            fixup=data.get("fixup", identity_transform()),
        )


def chain_transform(bones: Sequence[Bone], index: int) -> np.ndarray:
    """Compose relative transforms from the root down to ``index``."""
    path: List[int] = []
    idx = index
    while idx != -1:
        path.append(idx)
        idx = bones[idx].parent_index

    tm = identity_transform()
    for idx in reversed(path):
        tm = compose(tm, bones[idx].relative_transform)
    return tm


@dataclass(frozen=True, eq=False)
class Skeleton:
    """An immutable bind-pose hierarchy of named bones."""
    name: str
    bones: Tuple[Bone, ...]
    time: float = 0.0
    name_length: int = field(default=NAME_LENGTH, compare=False)
    _index: Dict[str, int] = field(default_factory=dict, init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "bones", tuple(self.bones))
        index: Dict[str, int] = {}
        for i, bone in enumerate(self.bones):
            index[bone.name] = i
        object.__setattr__(self, "_index", index)

    def __len__(self) -> int:
        return len(self.bones)

    def __iter__(self):
        return iter(self.bones)

    def __getitem__(self, index: int) -> Bone:
        return self.bones[index]

    @property
    def num_nodes(self) -> int:
        return len(self.bones)

    @property
    def bone_names(self) -> List[str]:
        return [bone.name for bone in self.bones]

    def find_named_node(self, name: str) -> int:
        """Index of the bone with this (normalized) name, or -1."""
        return self._index.get(normalize_bone_name(name, self.name_length), -1)

    def index_of(self, bone_name: str) -> int:
        """Index of an already normalized bone name, or -1."""
        return self._index.get(bone_name, -1)

    def node_name(self, index: int) -> str:
        return self.bones[index].name

    def node(self, index: int):
        """The scene node a bone was built from; None for the synthetic root."""
        return self.bones[index].node

    def relative_transform(self, index: int) -> np.ndarray:
        return self.bones[index].relative_transform

    def node_transform(self, index: int) -> np.ndarray:
        """Absolute transform of a bone, composed from the root down."""
        return chain_transform(self.bones, index)

    def fixup_transform(self, index: int) -> np.ndarray:
        return np.array(self.bones[index].fixup)

    def export_coordinate_system(self, node) -> Tuple[int, Any, np.ndarray]:
        """Find the bone a scene node should be exported relative to.

        Walks up from ``node`` to the first ancestor whose name is a bone
        of this skeleton. An origin node stops the walk and maps to the
        root bone. Returns the bone index, the scene node the walk stopped
        at, and that node's world transform with the bone's fixup applied.
        """
        bone_node = node
        while True:
            bone_index = self.find_named_node(bone_node.name)
            if bone_index != -1:
                break
            if bone_node.is_origin:
                bone_index = 0
                break
            parent = bone_node.parent
            if parent is None:
                raise ValueError(f"Node {node.name!r} is not attached to any bone")
            bone_node = parent

        transform = compose(bone_node.node_transform(self.time), self.bones[bone_index].fixup)
        return bone_index, bone_node, transform

    def to_dict(self) -> dict:
        """Logical pivot records, in index order."""
        return {
            "name": self.name,
            "num_pivots": len(self.bones),
            "pivots": [bone.to_dict() for bone in self.bones],
        }

    @classmethod
    def from_dict(cls, data: dict, name_length: int = NAME_LENGTH) -> "Skeleton":
        bones = tuple(Bone.from_dict(b) for b in data["pivots"])
        return cls(name=data.get("name", ""), bones=bones, name_length=name_length)
