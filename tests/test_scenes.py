"""Tests for the scene scheduler."""

import pytest

from shortform.scenes import active_scenes, schedule_scenes, window_contains


def _video(**overrides):
    v = {
        "fps": 30,
        "total_frames": 1800,
        "hook_duration": 120,
        "step_duration": 180,
        "cta_duration": 150,
    }
    v.update(overrides)
    return v


class TestScheduleScenes:
    def test_default_schedule(self):
        s = schedule_scenes(_video(), 3)
        assert s["hook"] == {"start": 0, "length": 120}
        assert s["steps"] == [
            {"start": 120, "length": 180},
            {"start": 300, "length": 180},
            {"start": 480, "length": 180},
        ]
        assert s["cta"] == {"start": 660, "length": 150}

    def test_steps_are_back_to_back(self):
        s = schedule_scenes(_video(step_duration=97), 6)
        for a, b in zip(s["steps"], s["steps"][1:]):
            assert a["start"] + a["length"] == b["start"]

    def test_no_steps(self):
        s = schedule_scenes(_video(), 0)
        assert s["steps"] == []
        assert s["cta"]["start"] == 120

    def test_cta_pulled_back_to_fit(self):
        # 120 + 10 * 180 = 1920 > 1800 - 150
        s = schedule_scenes(_video(), 10)
        assert s["cta"]["start"] == 1650
        assert s["cta"]["start"] + s["cta"]["length"] == 1800

    def test_cta_overlap_is_kept(self):
        s = schedule_scenes(_video(total_frames=700), 3)
        cta = s["cta"]
        last_step = s["steps"][-1]
        assert cta["start"] == 550
        assert cta["start"] < last_step["start"] + last_step["length"]

    @pytest.mark.parametrize("total,hook,step,cta,n", [
        (1800, 120, 180, 150, 3),
        (1800, 120, 180, 150, 12),
        (300, 10, 50, 300, 4),
        (90, 30, 30, 1, 0),
        (5000, 1, 1, 4999, 100),
    ])
    def test_cta_never_runs_past_end(self, total, hook, step, cta, n):
        s = schedule_scenes(
            _video(total_frames=total, hook_duration=hook, step_duration=step, cta_duration=cta), n,
        )
        assert s["cta"]["start"] + s["cta"]["length"] <= total

    def test_cta_longer_than_video_raises(self):
        with pytest.raises(ValueError, match="cta_duration"):
            schedule_scenes(_video(total_frames=100, cta_duration=150), 1)

    def test_deterministic(self):
        assert schedule_scenes(_video(), 3) == schedule_scenes(_video(), 3)


class TestWindowContains:
    def test_half_open(self):
        w = {"start": 120, "length": 180}
        assert not window_contains(w, 119)
        assert window_contains(w, 120)
        assert window_contains(w, 299)
        assert not window_contains(w, 300)


class TestActiveScenes:
    def test_one_scene_per_frame_by_default(self):
        s = schedule_scenes(_video(), 3)
        assert [k for k, _, _ in active_scenes(s, 0)] == ["hook"]
        assert active_scenes(s, 130)[0][:2] == ("step", 0)
        assert active_scenes(s, 479)[0][:2] == ("step", 1)
        assert [k for k, _, _ in active_scenes(s, 700)] == ["cta"]

    def test_tail_gap_has_no_scene(self):
        s = schedule_scenes(_video(), 3)
        for frame in (810, 1000, 1799):
            assert active_scenes(s, frame) == []

    def test_cta_coexists_with_step_on_overlap(self):
        s = schedule_scenes(_video(total_frames=700), 3)
        kinds = [(k, i) for k, i, _ in active_scenes(s, 600)]
        assert kinds == [("step", 2), ("cta", None)]
