"""Hierarchy Builder - scene graph to bind-pose skeleton

Walks the scene graph once at a reference time and produces an immutable
``Skeleton``. Bone 0 is always a synthetic root pivot; admitted scene
nodes hang beneath it in depth-first pre-order.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence, Union
import numpy as np

from ..core import get_logger, Config
from ..core.errors import DuplicateBoneError, MissingBoneError
from ..core.euler import XYZ_ROTATING, decompose
from ..core.skeleton import NAME_LENGTH, Bone, Skeleton, normalize_bone_name
from ..core.transforms import (
    cleanup_orthogonal_matrix,
    compose,
    decompose_transform,
    identity_transform,
    inverse_transform,
    make_transform,
    quaternion_to_matrix,
)
from ..scene.node import SceneNode


ROOT_NAME = "RootTransform"

Roots = Union[SceneNode, Sequence[SceneNode]]


class FixupMode(Enum):
    """How raw node transforms are normalized before storage."""
    NONE = "none"
    TRANSLATION = "translation"
    TRANSLATION_ROTATION = "translation_rotation"

    @classmethod
    def parse(cls, value: Union["FixupMode", str, None]) -> "FixupMode":
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown fixup mode: {value!r}") from None


def fixup_matrix(raw: np.ndarray, mode: FixupMode) -> np.ndarray:
    """Normalize a raw absolute transform according to ``mode``."""
    if mode == FixupMode.NONE:
        return np.array(raw, dtype=np.float64)

    if mode == FixupMode.TRANSLATION:
        normalized = make_transform(translation=raw[:, 3])
    else:
        translation, rotation, _ = decompose_transform(raw)
        normalized = make_transform(quaternion_to_matrix(rotation), translation)

    return cleanup_orthogonal_matrix(normalized)


def is_admitted(node: SceneNode, terrain_mode: bool = False) -> bool:
    """Whether a scene node becomes a bone. Rejected nodes still pass their children on."""
    if node.is_hidden:
        return False
    if terrain_mode and (node.is_normal_mesh or node.is_null_object):
        return False
    return node.is_bone


class _BuildState:
    """Bones and per-build caches for one traversal."""

    def __init__(
        self,
        time: float,
        origin_offset: np.ndarray,
        fixup_mode: FixupMode,
        fixup_tree: Optional[Skeleton],
        terrain_mode: bool,
        name_length: int,
    ):
        self.time = time
        self.origin_offset = origin_offset
        self.fixup_mode = fixup_mode
        self.fixup_tree = fixup_tree
        self.terrain_mode = terrain_mode
        self.name_length = name_length

        self.bones: List[Bone] = []
        self.names: Dict[str, int] = {}
        self.absolute: List[np.ndarray] = []

    def add_node(self, node: Optional[SceneNode], name: str, parent_index: int) -> int:
        bone_name = normalize_bone_name(name, self.name_length)
        if bone_name in self.names:
            raise DuplicateBoneError(bone_name)

        if node is None:
            raw = identity_transform()
        else:
            raw = compose(self.origin_offset, node.node_transform(self.time))

        if self.fixup_tree is not None:
            tree_index = self.fixup_tree.index_of(bone_name)
            if tree_index == -1:
                raise MissingBoneError(bone_name)
            raw = compose(raw, self.fixup_tree.fixup_transform(tree_index))

        normalized = fixup_matrix(raw, self.fixup_mode)
        fixup = compose(inverse_transform(raw), normalized)

        if parent_index == -1:
            relative = normalized
        else:
            relative = compose(inverse_transform(self.absolute[parent_index]), normalized)

        translation, rotation, _ = decompose_transform(relative)
        euler = decompose(quaternion_to_matrix(rotation), XYZ_ROTATING)

        bone = Bone(
            name=bone_name,
            parent_index=parent_index,
            translation=translation,
            rotation=rotation,
            euler=euler,
            fixup=fixup,
            node=node,
        )

        index = len(self.bones)
        self.bones.append(bone)
        self.names[bone_name] = index

        if parent_index == -1:
            self.absolute.append(bone.relative_transform)
        else:
            self.absolute.append(compose(self.absolute[parent_index], bone.relative_transform))

        return index

    def add_tree(self, node: SceneNode, parent_index: int) -> None:
        if is_admitted(node, self.terrain_mode):
            index = self.add_node(node, node.name, parent_index)
        else:
            index = parent_index

        for child in node.children:
            self.add_tree(child, index)


def build_skeleton(
    roots: Roots,
    time: float,
    origin_offset: Optional[np.ndarray] = None,
    fixup_mode: Union[FixupMode, str] = FixupMode.NONE,
    fixup_tree: Optional[Skeleton] = None,
    terrain_mode: bool = False,
    name: str = "",
    root_name: str = ROOT_NAME,
    name_length: int = NAME_LENGTH,
) -> Skeleton:
    """Build a skeleton from a root node or a list of root nodes.

    Args:
        roots: A single scene node, or a sequence of top-level nodes
        time: Scene time to sample transforms at
        origin_offset: Transform applied to every absolute node transform.
            Defaults to the inverse of a single root's transform at ``time``,
            or identity for a root list.
        fixup_mode: Normalization applied to raw transforms
        fixup_tree: Previously built skeleton whose per-bone fixups are
            applied first. Requires ``fixup_mode`` none.
        terrain_mode: Also skip plain meshes and null objects
        name: Skeleton name
        root_name: Name of the synthetic root pivot
        name_length: Maximum stored bone name length

    Returns:
        The built skeleton

    Raises:
        DuplicateBoneError: Two admitted nodes share a normalized name
        MissingBoneError: ``fixup_tree`` has no bone of that name
    """
    fixup_mode = FixupMode.parse(fixup_mode)
    if fixup_tree is not None and fixup_mode != FixupMode.NONE:
        raise ValueError("A fixup tree cannot be combined with a fixup mode")

    if isinstance(roots, SceneNode):
        root_list = [roots]
        if origin_offset is None:
            origin_offset = inverse_transform(roots.node_transform(time))
    else:
        root_list = list(roots)

    if origin_offset is None:
        origin_offset = identity_transform()
    else:
        origin_offset = np.asarray(origin_offset, dtype=np.float64)[:3, :]

    state = _BuildState(time, origin_offset, fixup_mode, fixup_tree, terrain_mode, name_length)
    root_index = state.add_node(None, root_name, -1)
    for root in root_list:
        state.add_tree(root, root_index)

    return Skeleton(name=name, bones=tuple(state.bones), time=time, name_length=name_length)


class HierarchyBuilder:
    """
    Builds bind-pose skeletons from a scene graph.

    Reads the ``hierarchy`` config section; keyword arguments to
    ``build`` override it per call.
    """

    def __init__(self, config: Optional[Config] = None):
        self.logger = get_logger("motion.hierarchy")
        self.config = config or Config()

        hierarchy_config = self.config.hierarchy

        self._fixup_mode = FixupMode.parse(hierarchy_config.get("fixup_mode", "none"))
        self._terrain_mode = bool(hierarchy_config.get("terrain_mode", False))
        self._root_name = hierarchy_config.get("root_name", ROOT_NAME)
        self._name_length = int(hierarchy_config.get("name_length", NAME_LENGTH))

    @property
    def fixup_mode(self) -> FixupMode:
        return self._fixup_mode

    def build(
        self,
        roots: Roots,
        time: float,
        origin_offset: Optional[np.ndarray] = None,
        fixup_tree: Optional[Skeleton] = None,
        fixup_mode: Union[FixupMode, str, None] = None,
        terrain_mode: Optional[bool] = None,
        name: str = "",
    ) -> Skeleton:
        """
        Build a skeleton at ``time``.

        With a ``fixup_tree`` the configured fixup mode is ignored, since
        the tree's fixups already carry the normalization.
        """
        if fixup_mode is None:
            fixup_mode = FixupMode.NONE if fixup_tree is not None else self._fixup_mode
        if terrain_mode is None:
            terrain_mode = self._terrain_mode

        skeleton = build_skeleton(
            roots,
            time,
            origin_offset=origin_offset,
            fixup_mode=fixup_mode,
            fixup_tree=fixup_tree,
            terrain_mode=terrain_mode,
            name=name,
            root_name=self._root_name,
            name_length=self._name_length,
        )

        if fixup_tree is None:
            self.logger.info(
                f"Built hierarchy {name!r} at t={time} with {skeleton.num_nodes} nodes "
                f"(fixup={FixupMode.parse(fixup_mode).value})"
            )
            self.logger.debug(f"Nodes: {', '.join(skeleton.bone_names)}")

        return skeleton
