import logging

import pytest

from errors import ViewNodeMissing
from geo import Coordinates, Position
from projector import ViewProjector, vote_percentages

from conftest import make_record


@pytest.mark.parametrize("likes,dislikes,expected", [
    (3, 1, (75.0, 25.0)),
    (0, 0, (0.0, 0.0)),
    (0, 4, (0.0, 100.0)),
    (1, 2, (100 / 3, 200 / 3)),
])
def test_vote_percentages(likes, dislikes, expected):
    assert vote_percentages(likes, dislikes) == pytest.approx(expected)


@pytest.fixture
def records():
    return [
        make_record(1, 0, 0, likes=3, dislikes=1, amenities=["WC"]),
        make_record(2, 10, 10),
    ]


class TestRenderFull:

    def test_builds_markers_and_cards(self, records):
        view = ViewProjector()
        view.render_full(records)

        assert [m.location_id for m in view.markers] == ["1", "2"]
        assert list(view.cards) == ["1", "2"]
        assert view.markers[0].types == ("WC",)

        first, second = view.cards["1"], view.cards["2"]
        assert (first.like_pct, first.dislike_pct) == (75.0, 25.0)
        assert (second.like_pct, second.dislike_pct) == (0.0, 0.0)

    def test_bounds_fit_rendered_markers(self, records):
        view = ViewProjector()
        view.render_full(records)
        assert view.bounds == ((0, 0), (10, 10))
        assert view.center() == (5, 5)

        view.render_full(records[:1])
        assert view.bounds == ((0, 0), (0, 0))

    def test_twice_is_idempotent(self, records):
        view = ViewProjector()
        view.render_full(records)
        first = view.snapshot()
        view.render_full(records)
        assert view.snapshot() == first
        assert len(view.markers) == len(view.cards) == 2

    def test_replaces_previous_render(self, records):
        view = ViewProjector()
        view.render_full(records)
        view.render_full(records[1:])
        assert list(view.cards) == ["2"]
        assert [m.location_id for m in view.markers] == ["2"]

    def test_empty(self):
        view = ViewProjector(empty_message="No favorite locations found.")
        view.render_full([])
        assert view.is_empty
        assert view.bounds is None
        assert view.status_message == "No favorite locations found."

    def test_awaiting_location_is_distinct_from_empty(self, records):
        view = ViewProjector()
        view.render_full(records, awaiting_location=True)
        assert "location" in view.status_message
        assert not view.is_empty

    def test_distances_annotate_cards(self, records):
        view = ViewProjector()
        view.render_full(records, distances={"1": 0.0})
        assert view.cards["1"].distance_km == 0.0
        assert view.cards["2"].distance_km is None

    def test_title(self, records):
        view = ViewProjector()
        view.render_full(records, title="Praia")
        assert view.snapshot()["title"] == "Praia"


class TestPatchVotes:

    def test_updates_only_vote_fields(self, records):
        view = ViewProjector()
        view.render_full(records)
        before = view.cards["1"].to_dict()

        patched = view.patch_votes(make_record(1, 0, 0, likes=4, dislikes=1, title="Renamed"))

        assert patched
        card = view.cards["1"]
        assert (card.likes, card.dislikes) == (4, 1)
        assert card.like_pct == pytest.approx(80.0)
        assert card.dislike_pct == pytest.approx(20.0)
        assert card.title == before["title"]
        assert card.description == before["description"]
        assert card.image_ref == before["src"]
        assert view.cards["2"].likes == 0

    def test_last_applied_wins(self, records):
        view = ViewProjector()
        view.render_full(records)
        view.patch_votes(make_record(1, likes=4, dislikes=1))
        view.patch_votes(make_record(1, likes=4, dislikes=2))
        assert (view.cards["1"].likes, view.cards["1"].dislikes) == (4, 2)

    def test_missing_node_is_a_logged_no_op(self, records, caplog):
        view = ViewProjector()
        view.render_full(records[:1])
        before = view.snapshot()

        with caplog.at_level(logging.WARNING):
            assert view.patch_votes(make_record(2, likes=9)) is False

        assert view.snapshot() == before
        assert "not rendered" in caplog.text

    def test_node_lookup_raises(self):
        with pytest.raises(ViewNodeMissing):
            ViewProjector().node("nope")


class TestPosition:

    def test_accuracy_circle_is_half_the_accuracy(self):
        view = ViewProjector()
        view.show_position(Position(Coordinates(32.65, -16.91), accuracy_m=100))
        marker = view.position_marker
        assert marker.radius_m == 50
        assert marker.popup == "You are within 50 meters from this point"

    def test_position_survives_render(self, records):
        view = ViewProjector()
        view.show_position(Position(Coordinates(1, 1), accuracy_m=10))
        view.render_full([])
        assert view.snapshot()["position"]["lat"] == 1
        assert view.center() == (1, 1)
