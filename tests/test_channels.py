import numpy as np
import pytest

from rigexport.motion.channels import (
    AnimationHeader,
    BitChannel,
    BitChannelType,
    BoneChannels,
    ChannelSet,
    ChannelType,
    VectorChannel,
    is_channel_empty,
)


class TestVectorChannel:

    def test_starts_at_identity(self):
        channel = VectorChannel(1, ChannelType.Q, 5)
        np.testing.assert_array_equal(channel.get_vector(3), [1.0, 0.0, 0.0, 0.0])
        assert is_channel_empty(channel)

    def test_within_tolerance_is_still_empty(self):
        channel = VectorChannel(1, ChannelType.X, 5)
        channel.set_vector(2, [0.00001])
        assert channel.is_empty

    def test_outside_tolerance_is_not_empty(self):
        channel = VectorChannel(1, ChannelType.X, 5)
        channel.set_vector(2, [0.001])
        assert not channel.is_empty
        assert channel.active_range() == (2, 2)

    def test_set_values(self):
        channel = VectorChannel(1, ChannelType.Y, 4)
        channel.set_values([0.0, 1.0, 2.0, 0.0])
        assert channel.active_range() == (1, 2)
        assert not channel.is_identity(1)
        assert channel.is_identity(3)

    def test_clear_invisible_holds_first_value_of_each_span(self):
        channel = VectorChannel(1, ChannelType.X, 6)
        channel.set_values([0.0, 1.0, 2.0, 3.0, 4.0, 5.0])
        vis = BitChannel(1, BitChannelType.VIS, 6)
        vis.set_values([True, False, False, True, False, False])

        channel.clear_invisible_data(vis)

        np.testing.assert_array_equal(channel.data[:, 0], [0.0, 1.0, 1.0, 3.0, 4.0, 4.0])
        np.testing.assert_array_equal(channel.dont_care, [False, True, True, False, True, True])

    def test_invisible_from_first_frame(self):
        channel = VectorChannel(1, ChannelType.X, 3)
        channel.set_values([7.0, 8.0, 9.0])
        vis = BitChannel(1, BitChannelType.VIS, 3)
        vis.set_values([False, False, True])

        channel.clear_invisible_data(vis)
        np.testing.assert_array_equal(channel.data[:, 0], [7.0, 7.0, 9.0])

    def test_record(self):
        channel = VectorChannel(3, ChannelType.Z, 2)
        record = channel.to_dict()
        assert record["pivot"] == 3
        assert record["type"] == "z"
        assert record["frame_count"] == 2
        assert record["data"] == [[0.0], [0.0]]


class TestBitChannel:

    def test_defaults(self):
        assert BitChannel(0, BitChannelType.VIS, 3).get_bit(1) is True
        assert BitChannel(0, BitChannelType.STEP, 3).get_bit(1) is False

    def test_empty_when_all_default(self):
        vis = BitChannel(0, BitChannelType.VIS, 3)
        assert vis.is_empty
        vis.set_bit(2, False)
        assert not vis.is_empty
        assert vis.active_range() == (2, 2)


class TestBoneChannels:

    def test_allocate_has_every_channel(self):
        bone = BoneChannels.allocate(2, "ARM", 4)
        assert len(bone.channels()) == 9
        assert bone.non_empty_channels() == []
        assert bone[ChannelType.Q].vector_len == 4
        assert bone[BitChannelType.VIS] is bone.visibility

    def test_clear_skipped_when_always_visible(self):
        bone = BoneChannels.allocate(2, "ARM", 4)
        bone[ChannelType.X].set_values([1.0, 2.0, 3.0, 4.0])
        assert not bone.clear_invisible_data()
        np.testing.assert_array_equal(bone[ChannelType.X].data[:, 0], [1.0, 2.0, 3.0, 4.0])

    def test_clear_leaves_euler_channels(self):
        bone = BoneChannels.allocate(2, "ARM", 4)
        bone[ChannelType.X].set_values([1.0, 2.0, 3.0, 4.0])
        bone[ChannelType.XR].set_values([1.0, 2.0, 3.0, 4.0])
        bone.visibility.set_values([True, False, False, True])

        assert bone.clear_invisible_data()
        np.testing.assert_array_equal(bone[ChannelType.X].data[:, 0], [1.0, 2.0, 2.0, 4.0])
        np.testing.assert_array_equal(bone[ChannelType.XR].data[:, 0], [1.0, 2.0, 3.0, 4.0])

    def test_position_and_rotation_views(self):
        bone = BoneChannels.allocate(2, "ARM", 3)
        bone[ChannelType.Y].set_values([0.0, 1.0, 2.0])
        assert bone.position.shape == (3, 3)
        np.testing.assert_array_equal(bone.position[:, 1], [0.0, 1.0, 2.0])
        assert bone.rotation.shape == (3, 4)


class TestChannelSet:

    def _channel_set(self):
        header = AnimationHeader(name="walk", hierarchy_name="hero", num_frames=3, frame_rate=30.0)
        channel_set = ChannelSet(header=header)
        moving = BoneChannels.allocate(2, "ARM", 3)
        moving[ChannelType.X].set_values([0.0, 1.0, 2.0])
        channel_set.bones[2] = moving
        channel_set.bones[1] = BoneChannels.allocate(1, "ROOT", 3)
        return channel_set

    def test_iterates_in_bone_order(self):
        assert [bone.pivot for bone in self._channel_set()] == [1, 2]

    def test_find_by_name(self):
        channel_set = self._channel_set()
        assert channel_set.find("ARM").pivot == 2
        assert channel_set.find("LEG") is None

    def test_record_omits_empty_channels(self):
        data = self._channel_set().to_dict()
        assert data["header"] == {
            "name": "walk",
            "hierarchy_name": "hero",
            "num_frames": 3,
            "frame_rate": 30.0,
            "start_frame": 0,
        }
        root, arm = data["bones"]
        assert root["channels"] == []
        assert [c["type"] for c in arm["channels"]] == ["x"]

    def test_record_with_empty_channels(self):
        data = self._channel_set().to_dict(include_empty=True)
        assert len(data["bones"][0]["channels"]) == 9

    @pytest.mark.parametrize("channel_type", list(ChannelType))
    def test_identity_width(self, channel_type):
        expected = 4 if channel_type is ChannelType.Q else 1
        assert channel_type.vector_len == expected
