"""Tests for link set membership changes."""

from linked_tickets.codec import decode_link_field, encode_link_field
from linked_tickets.link_set import add_member, has_member, remove_member


class TestAddMember:
    def test_appends_absent_id(self):
        assert add_member(["link:100", "link:200"], 1) == ["link:100", "link:200", "link:1"]

    def test_present_id_leaves_order_unchanged(self):
        tags = ["link:3", "link:1", "link:2"]
        assert add_member(tags, 1) == ["link:3", "link:1", "link:2"]

    def test_is_idempotent(self):
        once = add_member(["link:4"], 9)
        assert add_member(once, 9) == once

    def test_does_not_mutate_input(self):
        tags = ["link:4"]
        add_member(tags, 9)
        assert tags == ["link:4"]

    def test_adds_to_empty_set(self):
        assert add_member([], 999) == ["link:999"]


class TestRemoveMember:
    def test_removes_present_id(self):
        assert remove_member(["link:1", "link:2", "link:3"], 2) == ["link:1", "link:3"]

    def test_absent_id_is_noop(self):
        assert remove_member(["link:1"], 7) == ["link:1"]

    def test_remove_undoes_add_of_absent_id(self):
        tags = ["link:5", "link:6"]
        assert remove_member(add_member(tags, 7), 7) == tags

    def test_does_not_mutate_input(self):
        tags = ["link:1", "link:2"]
        remove_member(tags, 1)
        assert tags == ["link:1", "link:2"]


class TestMembership:
    def test_has_member(self):
        assert has_member(["link:1"], 1)
        assert not has_member(["link:1"], 2)

    def test_algebra_output_round_trips_through_codec(self):
        tags = remove_member(add_member(add_member([], 10), 20), 10)
        tags = add_member(tags, 30)
        assert decode_link_field(encode_link_field(tags)) == tags
