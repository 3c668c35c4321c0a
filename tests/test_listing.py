"""Tests for track list comparison and merging"""

from unittest.mock import Mock

from pipebomb.collection.listing import (
    Subscribers,
    TrackListing,
    track_ids_differ,
    valid_track_list_json,
)
from pipebomb.music.track import Track
from pipebomb.net.context import Context


def make_tracks(*track_ids):
    context = Context("music.example.org")
    return [Track(context, track_id) for track_id in track_ids]


class TestTrackIdsDiffer:
    """Test positional comparison of track lists"""

    def test_same_order(self):
        """Equal ID sequences do not differ"""
        assert not track_ids_differ(make_tracks("a", "b"), make_tracks("a", "b"))

    def test_swapped_order(self):
        """Same IDs in another order differ"""
        assert track_ids_differ(make_tracks("a", "b"), make_tracks("b", "a"))

    def test_different_length(self):
        """An appended track differs"""
        assert track_ids_differ(make_tracks("a", "b"), make_tracks("a", "b", "c"))

    def test_distinct_instances_same_ids(self):
        """Comparison is by ID, not by object identity"""
        first = make_tracks("a")
        second = make_tracks("a")
        assert first[0] is not second[0]
        assert not track_ids_differ(first, second)

    def test_unknown_lists(self):
        """An unknown list only equals another unknown list"""
        assert not track_ids_differ(None, None)
        assert track_ids_differ(None, [])


class TestTrackListingMerge:
    """Test the merge rule for collection snapshots"""

    def test_absent_track_list_keeps_known_list(self):
        """A snapshot without tracks never erases the known ones"""
        listing = TrackListing("Drive", make_tracks("a", "b"))
        changed = listing.merge(TrackListing("Drive", None))
        assert not changed
        assert [track.track_id for track in listing.tracks] == ["a", "b"]

    def test_name_change_notifies(self):
        """A new name alone is a change"""
        listing = TrackListing("Drive", make_tracks("a"))
        assert listing.merge(TrackListing("Drive 2", make_tracks("a")))
        assert listing.name == "Drive 2"

    def test_track_change_notifies(self):
        """A reordered list is a change and is taken over"""
        listing = TrackListing("Drive", make_tracks("a", "b"))
        assert listing.merge(TrackListing("Drive", make_tracks("b", "a")))
        assert [track.track_id for track in listing.tracks] == ["b", "a"]

    def test_identical_snapshot_is_not_a_change(self):
        """Same name and IDs report no change"""
        listing = TrackListing("Drive", make_tracks("a", "b"))
        assert not listing.merge(TrackListing("Drive", make_tracks("a", "b")))

    def test_first_known_list_is_a_change(self):
        """Learning the list of a list-less collection is a change"""
        listing = TrackListing("Drive")
        assert listing.merge(TrackListing("Drive", make_tracks("a")))

    def test_copy_is_independent(self):
        """copy_tracks() returns a new list"""
        listing = TrackListing("Drive", make_tracks("a"))
        copy = listing.copy_tracks()
        copy.clear()
        assert len(listing.tracks) == 1


class TestSubscribers:
    """Test the callback list"""

    def test_add_is_idempotent(self):
        """A callback is registered once"""
        subscribers = Subscribers()
        callback = Mock()
        assert subscribers.add(callback)
        assert not subscribers.add(callback)
        subscribers.notify("x")
        callback.assert_called_once_with("x")

    def test_remove(self):
        """Removed callbacks are not notified"""
        subscribers = Subscribers()
        callback = Mock()
        subscribers.add(callback)
        assert subscribers.remove(callback)
        assert not subscribers.remove(callback)
        subscribers.notify("x")
        callback.assert_not_called()
        assert not subscribers

    def test_failing_callback_does_not_stop_the_rest(self):
        """A raising callback is logged and the next one still runs"""
        subscribers = Subscribers()
        broken = Mock(side_effect=RuntimeError("boom"))
        callback = Mock()
        subscribers.add(broken)
        subscribers.add(callback)
        subscribers.notify("x")
        broken.assert_called_once_with("x")
        callback.assert_called_once_with("x")


class TestTrackListValidation:
    """Test trackList payload validation"""

    def test_valid_shapes(self):
        """Absent and well-formed lists are valid"""
        assert valid_track_list_json(None)
        assert valid_track_list_json([])
        assert valid_track_list_json([{"trackID": "a"}])

    def test_invalid_shapes(self):
        """Non-lists and items without a string trackID are invalid"""
        assert not valid_track_list_json("a")
        assert not valid_track_list_json([{"trackID": 1}])
        assert not valid_track_list_json(["a"])
