"""Tests for beat-cut b-roll scheduling."""

from shortform.beats import beat_overlays_at, overlay_length, schedule_beat_overlays


class TestScheduleBeatOverlays:
    def test_reference_example(self):
        overlays = schedule_beat_overlays([60, 120, 240], ["a", "b"])
        assert [(o["window"]["start"], o["window"]["length"], o["source"]) for o in overlays] == [
            (60, 14, "a"),
            (120, 15, "b"),
            (240, 16, "a"),
        ]

    def test_length_cycle_by_index(self):
        overlays = schedule_beat_overlays(list(range(0, 600, 60)), ["x"])
        assert [o["window"]["length"] for o in overlays] == [14, 15, 16, 17, 14, 15, 16, 17, 14, 15]

    def test_length_depends_on_index_not_frame(self):
        assert overlay_length(0) == 14
        a = schedule_beat_overlays([999], ["x"])
        assert a[0]["window"]["length"] == 14

    def test_sources_wrap(self):
        overlays = schedule_beat_overlays([0, 20, 40, 60, 80], ["a", "b", "c"])
        assert [o["source"] for o in overlays] == ["a", "b", "c", "a", "b"]

    def test_no_sources_gives_empty_slots(self):
        overlays = schedule_beat_overlays([60, 120], [])
        assert len(overlays) == 2
        assert all(o["source"] is None for o in overlays)

    def test_unsorted_beats_keep_index_order(self):
        overlays = schedule_beat_overlays([240, 60, 120], ["a", "b"])
        assert [o["window"]["start"] for o in overlays] == [240, 60, 120]
        assert [o["source"] for o in overlays] == ["a", "b", "a"]
        assert [o["window"]["length"] for o in overlays] == [14, 15, 16]

    def test_no_beats(self):
        assert schedule_beat_overlays([], ["a"]) == []


class TestBeatOverlaysAt:
    def test_window_is_half_open(self):
        overlays = schedule_beat_overlays([60], ["a"])
        assert beat_overlays_at(overlays, 59) == []
        assert len(beat_overlays_at(overlays, 60)) == 1
        assert len(beat_overlays_at(overlays, 73)) == 1
        assert beat_overlays_at(overlays, 74) == []

    def test_close_beats_stack_in_list_order(self):
        overlays = schedule_beat_overlays([100, 105, 95], ["a", "b", "c"])
        active = beat_overlays_at(overlays, 106)
        assert [o["index"] for o in active] == [0, 1, 2]
