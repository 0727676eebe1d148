"""Shared fixtures: isolated config and small synthetic scenes"""

import numpy as np
import pytest
import yaml

from rigexport.core import Config
from rigexport.scene import MemoryNode, MemoryScene


@pytest.fixture(autouse=True)
def reset_config():
    Config.reset_instance()
    yield
    Config.reset_instance()


@pytest.fixture
def config(tmp_path):
    path = tmp_path / "config.yaml"
    with open(path, "w") as f:
        yaml.safe_dump({"export": {"output_dir": str(tmp_path / "output")}}, f)
    return Config(str(path))


@pytest.fixture
def chain_scene():
    """Root -> Spine -> Neck -> Head, each offset and slightly rotated."""
    return MemoryScene.from_dict({
        "nodes": [{
            "name": "Root",
            "position": [1.0, 0.0, 0.0],
            "rotation": {"euler": [0.0, 0.0, 30.0]},
            "children": [{
                "name": "Spine",
                "position": [0.0, 2.0, 0.0],
                "rotation": {"euler": [10.0, 0.0, 0.0]},
                "children": [{
                    "name": "Neck",
                    "position": [0.0, 1.5, 0.5],
                    "rotation": {"euler": [0.0, 45.0, 0.0]},
                    "children": [{
                        "name": "Head",
                        "position": [0.0, 0.5, 0.0],
                        "rotation": {"euler": [-20.0, 5.0, 15.0]},
                    }],
                }],
            }],
        }],
    })


@pytest.fixture
def two_bone_scene():
    """Root with one child; tests attach tracks to the child."""
    root = MemoryNode("Root")
    child = MemoryNode("Child", parent=root, position=[0.0, 1.0, 0.0])
    return MemoryScene([root]), root, child


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
