import numpy as np
import pytest
import yaml

from rigexport.core.euler import compose as euler_compose
from rigexport.core.transforms import compose, make_transform
from rigexport.scene import KeyframeTrack, MemoryNode, MemoryScene, RotationTrack, load_scene


class TestKeyframeTrack:

    def test_linear_interpolation(self):
        track = KeyframeTrack([0, 10], [[0.0, 0.0, 0.0], [10.0, 20.0, 0.0]])
        np.testing.assert_allclose(track.sample(5), [5.0, 10.0, 0.0])

    def test_holds_end_values(self):
        track = KeyframeTrack([2, 4], [[1.0], [3.0]])
        assert track.sample(-1)[0] == 1.0
        assert track.sample(100)[0] == 3.0

    def test_step_holds_until_next_key(self):
        track = KeyframeTrack([0, 10], [[1.0], [2.0]], interpolation="step")
        assert track.sample(9.5)[0] == 1.0
        assert track.sample(10)[0] == 2.0

    def test_keys_are_sorted(self):
        track = KeyframeTrack([10, 0], [[2.0], [0.0]])
        assert track.sample(5)[0] == pytest.approx(1.0)

    def test_rejects_unknown_interpolation(self):
        with pytest.raises(ValueError):
            KeyframeTrack([0], [[0.0]], interpolation="cubic")

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            KeyframeTrack([], [])

    def test_rotation_track_requires_quaternions(self):
        with pytest.raises(ValueError):
            RotationTrack([0], [[0.0, 0.0, 0.0]])

    def test_rotation_track_normalizes_keys(self):
        track = RotationTrack([0], [[2.0, 0.0, 0.0, 0.0]])
        np.testing.assert_allclose(track.sample(0), [1.0, 0.0, 0.0, 0.0])


class TestMemoryNode:

    def test_parent_links(self):
        root = MemoryNode("Root")
        child = MemoryNode("Child", parent=root)
        assert child.parent is root
        assert root.children == [child]

    def test_node_transform_composes_parent(self):
        root = MemoryNode("Root", position=[1.0, 0.0, 0.0], rotation=[np.cos(np.pi / 4), 0.0, 0.0, np.sin(np.pi / 4)])
        child = MemoryNode("Child", parent=root, position=[2.0, 0.0, 0.0])
        expected = compose(
            make_transform(euler_compose(0.0, 0.0, np.pi / 2)[:, :3], [1.0, 0.0, 0.0]),
            make_transform(translation=[2.0, 0.0, 0.0]),
        )
        np.testing.assert_allclose(child.node_transform(0), expected, atol=1e-12)

    def test_scale_applies_before_rotation(self):
        node = MemoryNode("Scaled", scale=[2.0, 1.0, 1.0])
        np.testing.assert_allclose(node.node_transform(0)[:, :3], np.diag([2.0, 1.0, 1.0]))

    def test_defaults(self):
        node = MemoryNode("Node")
        assert node.visibility(0) == 1.0
        assert node.is_bone
        assert not node.is_hidden
        assert not node.is_origin
        np.testing.assert_array_equal(node.rotation_controller_value(3), [1.0, 0.0, 0.0, 0.0])


class TestSceneLoading:

    def test_from_dict(self, chain_scene):
        names = [node.name for node in chain_scene.walk()]
        assert names == ["Root", "Spine", "Neck", "Head"]

    def test_euler_rotation_values(self):
        scene = MemoryScene.from_dict({
            "nodes": [{"name": "A", "rotation": {"euler": [90.0, 0.0, 0.0]}}],
        })
        node = scene.find_node("A")
        np.testing.assert_allclose(
            node.node_transform(0)[:, :3], euler_compose(np.pi / 2, 0.0, 0.0)[:, :3], atol=1e-12
        )

    def test_axis_angle_rotation_values(self):
        scene = MemoryScene.from_dict({
            "nodes": [{"name": "A", "rotation": {"axis": [0.0, 0.0, 2.0], "angle": 90.0}}],
        })
        rotation = scene.find_node("A").rotation_controller_value(0)
        np.testing.assert_allclose(rotation, [np.sqrt(0.5), 0.0, 0.0, np.sqrt(0.5)], atol=1e-15)
        assert np.linalg.norm(rotation) == pytest.approx(1.0, abs=1e-15)

    def test_keyed_tracks_and_flags(self):
        scene = MemoryScene.from_dict({
            "ticks_per_frame": 2,
            "nodes": [{
                "name": "A",
                "mesh": True,
                "visibility": {"keys": [[0, 1.0], [10, 0.0]]},
                "position": {"interpolation": "step", "keys": [[0, [0, 0, 0]], [4, [1, 0, 0]]]},
            }],
        })
        node = scene.find_node("A")
        assert node.is_normal_mesh
        assert scene.frame_time(3) == 6.0
        assert node.visibility(9.9) == 1.0
        assert node.visibility(10) == 0.0
        np.testing.assert_array_equal(node.position_controller_value(3.9), [0.0, 0.0, 0.0])

    def test_bad_rotation_value(self):
        with pytest.raises(ValueError):
            MemoryScene.from_dict({"nodes": [{"name": "A", "rotation": [1.0, 2.0]}]})

    def test_node_without_name(self):
        with pytest.raises(ValueError):
            MemoryScene.from_dict({"nodes": [{"position": [0, 0, 0]}]})

    def test_load_scene_file(self, tmp_path):
        path = tmp_path / "scene.yaml"
        with open(path, "w") as f:
            yaml.safe_dump({"scene": {"nodes": [{"name": "Root", "children": [{"name": "Leaf"}]}]}}, f)
        scene = load_scene(path)
        assert [n.name for n in scene.walk()] == ["Root", "Leaf"]
