"""Scene graph interface and in-memory scenes"""

from .node import SceneNode, Scene
from .memory import KeyframeTrack, RotationTrack, MemoryNode, MemoryScene, load_scene

__all__ = [
    "SceneNode", "Scene",
    "KeyframeTrack", "RotationTrack", "MemoryNode", "MemoryScene", "load_scene",
]
