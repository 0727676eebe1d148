"""Scene graph collaborator interface.

The exporter never owns a scene; a host application adapts its own
node type to ``SceneNode`` and its timeline to ``Scene``.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
import numpy as np


class SceneNode(ABC):
    """A node of the host scene graph."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def parent(self) -> Optional["SceneNode"]:
        ...

    @property
    @abstractmethod
    def children(self) -> Sequence["SceneNode"]:
        ...

    @property
    def is_hidden(self) -> bool:
        return False

    @property
    def is_bone(self) -> bool:
        """Whether the host considers this node part of the hierarchy."""
        return True

    @property
    def is_normal_mesh(self) -> bool:
        return False

    @property
    def is_null_object(self) -> bool:
        return False

    @property
    def is_origin(self) -> bool:
        return False

    @abstractmethod
    def visibility(self, time: float) -> float:
        """Visibility value at ``time``; the node is visible when it is positive."""
        ...

    @abstractmethod
    def node_transform(self, time: float) -> np.ndarray:
        """Absolute ``(3, 4)`` transform at ``time``."""
        ...

    def position_controller_value(self, time: float) -> Optional[np.ndarray]:
        """Raw position controller output, or None when there is no controller."""
        return None

    def rotation_controller_value(self, time: float) -> Optional[np.ndarray]:
        """Raw rotation controller output, or None when there is no controller."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class Scene(ABC):
    """Timeline and top-level nodes of a host scene."""

    @property
    @abstractmethod
    def roots(self) -> Sequence[SceneNode]:
        ...

    @abstractmethod
    def frame_time(self, frame: int) -> float:
        """Scene time of an animation frame."""
        ...

    def walk(self):
        """Yield every node in depth-first pre-order."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_node(self, name: str) -> Optional[SceneNode]:
        for node in self.walk():
            if node.name == name:
                return node
        return None
