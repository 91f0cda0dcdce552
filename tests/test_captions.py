"""Tests for word-by-word caption timing."""

import pytest

from shortform.captions import (
    CAPTION_RISE_PX,
    active_captions,
    captions_at,
    chunk_visible,
    chunks_from_words,
    normalize_chunk,
    render_chunk,
    word_progress,
)


def _chunk(start=170, end=260, words=None, text=None):
    return {"start": start, "end": end, "words": words, "text": text}


WORDS = [
    {"text": "try", "offset": 0},
    {"text": "this", "offset": 6},
    {"text": "3-step", "offset": 10},
    {"text": "flow.", "offset": 18},
]


class TestActiveCaptions:
    def test_drops_chunks_past_the_end(self):
        chunks = [_chunk(0, 100), _chunk(1700, 1801), _chunk(1790, 1800)]
        active = active_captions(chunks, 1800)
        assert active == [chunks[0], chunks[2]]

    def test_drops_whole_chunk_not_truncated(self):
        chunk = _chunk(1750, 1850, text="too late")
        assert active_captions([chunk], 1800) == []

    def test_keeps_order_of_unsorted_input(self):
        chunks = [_chunk(500, 600), _chunk(10, 20), _chunk(300, 310)]
        assert active_captions(chunks, 1800) == chunks


class TestVisibility:
    def test_bounds_inclusive(self):
        c = _chunk(90, 150)
        assert not chunk_visible(c, 89)
        assert chunk_visible(c, 90)
        assert chunk_visible(c, 150)
        assert not chunk_visible(c, 151)

    def test_invisible_chunk_renders_nothing(self):
        assert render_chunk(_chunk(90, 150, text="hi"), 10, 30) == {"visible": False, "words": []}


class TestWordReveal:
    def test_progress_ramp_at_30fps(self):
        c = _chunk(words=[{"text": "try", "offset": 0}])
        assert render_chunk(c, 170, 30)["words"][0]["progress"] == 0.0
        assert render_chunk(c, 175, 30)["words"][0]["progress"] == 1.0
        ramp = [render_chunk(c, f, 30)["words"][0]["progress"] for f in range(170, 176)]
        assert all(a < b for a, b in zip(ramp, ramp[1:]))

    def test_ramp_scales_with_fps(self):
        # 60fps: one sixth of a second is 10 frames.
        assert word_progress(0, 5, 60) == pytest.approx(0.5)
        assert word_progress(0, 10, 60) == 1.0

    def test_words_use_their_offsets(self):
        state = render_chunk(_chunk(words=WORDS), 176, 30)
        progress = [w["progress"] for w in state["words"]]
        # try done, this 0/5, 3-step and flow. not started
        assert progress == [1.0, 0.0, 0.0, 0.0]

    def test_opacity_and_offset_follow_progress(self):
        c = _chunk(words=[{"text": "try", "offset": 0}])
        word = render_chunk(c, 172, 30)["words"][0]
        assert word["opacity"] == word["progress"]
        assert word["y_offset"] == pytest.approx((1 - word["progress"]) * CAPTION_RISE_PX)
        assert render_chunk(c, 170, 30)["words"][0]["y_offset"] == CAPTION_RISE_PX
        assert render_chunk(c, 200, 30)["words"][0]["y_offset"] == 0

    def test_word_after_chunk_end_stays_hidden(self):
        c = _chunk(start=0, end=5, words=[{"text": "late", "offset": 20}])
        assert render_chunk(c, 5, 30)["words"][0]["progress"] == 0.0


class TestStaticFallback:
    def test_text_only_chunk_is_static(self):
        c = _chunk(90, 150, text="If you feel awkward meeting people…")
        for frame in (90, 120, 150):
            state = render_chunk(c, frame, 30)
            assert state["visible"]
            assert state["words"] == [{
                "text": "If you feel awkward meeting people…",
                "progress": 1.0,
                "opacity": 1.0,
                "y_offset": 0.0,
            }]

    def test_empty_words_falls_back_to_text(self):
        state = render_chunk(_chunk(words=[], text="fallback"), 200, 30)
        assert [w["text"] for w in state["words"]] == ["fallback"]

    def test_words_take_precedence_over_text(self):
        state = render_chunk(_chunk(words=WORDS, text="ignored"), 200, 30)
        assert [w["text"] for w in state["words"]] == ["try", "this", "3-step", "flow."]

    def test_no_words_no_text_renders_empty_string(self):
        state = render_chunk(_chunk(), 200, 30)
        assert state["words"][0]["text"] == ""


class TestCaptionsAt:
    def test_overlapping_chunks_all_render_in_order(self):
        chunks = [_chunk(100, 200, text="second"), _chunk(50, 150, text="first")]
        rendered = captions_at(chunks, 120, 30)
        assert [r["index"] for r in rendered] == [0, 1]
        assert [r["words"][0]["text"] for r in rendered] == ["second", "first"]

    def test_identical_chunks_are_not_deduplicated(self):
        chunk = _chunk(0, 10, text="same")
        assert len(captions_at([chunk, dict(chunk)], 5, 30)) == 2


class TestNormalizeChunk:
    def test_normalizes_words(self):
        c = normalize_chunk({"start": 1, "end": 2, "words": [{"text": "hi"}]}, 0)
        assert c == {"start": 1, "end": 2, "words": [{"text": "hi", "offset": 0}], "text": None}

    def test_missing_end_raises(self):
        with pytest.raises(ValueError, match="Caption 3: missing required field 'end'"):
            normalize_chunk({"start": 1}, 3)

    def test_end_before_start_raises(self):
        with pytest.raises(ValueError, match="end"):
            normalize_chunk({"start": 10, "end": 5}, 0)

    def test_negative_start_raises(self):
        with pytest.raises(ValueError, match="start"):
            normalize_chunk({"start": -1, "end": 5}, 0)

    def test_non_integer_frame_raises(self):
        with pytest.raises(ValueError, match="integer"):
            normalize_chunk({"start": 1.5, "end": 5}, 0)

    def test_word_without_text_raises(self):
        with pytest.raises(ValueError, match="word 1"):
            normalize_chunk({"start": 0, "end": 5, "words": [{"text": "a"}, {"offset": 2}]}, 0)

    def test_bare_string_word_raises(self):
        with pytest.raises(ValueError, match="word 0"):
            normalize_chunk({"start": 0, "end": 5, "words": ["a"]}, 0)

    def test_negative_offset_raises(self):
        with pytest.raises(ValueError, match="offset"):
            normalize_chunk({"start": 0, "end": 5, "words": [{"text": "a", "offset": -1}]}, 0)


class TestChunksFromWords:
    def test_groups_and_converts_to_frames(self):
        words = [
            {"start": 1.0, "end": 1.2, "text": "try"},
            {"start": 1.2, "end": 1.4, "text": "this"},
            {"start": 1.5, "end": 1.9, "text": "3-step"},
            {"start": 2.0, "end": 2.5, "text": "flow."},
            {"start": 3.0, "end": 3.5, "text": "Now"},
        ]
        chunks = chunks_from_words(words, fps=30, max_words=4)
        assert len(chunks) == 2
        first = chunks[0]
        assert first["start"] == 30
        assert first["end"] == 75
        assert [w["offset"] for w in first["words"]] == [0, 6, 15, 30]
        assert first["text"] == "try this 3-step flow."
        assert chunks[1] == {
            "start": 90, "end": 105,
            "words": [{"text": "Now", "offset": 0}],
            "text": "Now",
        }

    def test_back_to_back_words_never_overlap(self):
        words = [
            {"start": 0.0, "end": 0.5, "text": "one"},
            {"start": 0.5, "end": 1.0, "text": "two"},
            {"start": 1.0, "end": 1.5, "text": "three"},
        ]
        chunks = chunks_from_words(words, fps=30, max_words=2)
        assert [(c["start"], c["end"]) for c in chunks] == [(0, 29), (30, 45)]
        for frame in range(0, 46):
            assert len(captions_at(chunks, frame, 30)) == 1

    def test_gap_between_chunks_keeps_end(self):
        words = [
            {"start": 0.0, "end": 0.5, "text": "one"},
            {"start": 2.0, "end": 2.5, "text": "two"},
        ]
        chunks = chunks_from_words(words, fps=30, max_words=1)
        assert chunks[0]["end"] == 15

    def test_output_passes_validation(self):
        words = [{"start": 0.0, "end": 0.01, "text": " a "}]
        chunk = chunks_from_words(words, fps=30)[0]
        assert normalize_chunk(chunk, 0)["words"] == [{"text": "a", "offset": 0}]

    def test_empty_transcript(self):
        assert chunks_from_words([], fps=30) == []

    def test_invalid_max_words_raises(self):
        with pytest.raises(ValueError, match="max_words"):
            chunks_from_words([], fps=30, max_words=0)
