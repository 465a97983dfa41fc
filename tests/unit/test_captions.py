"""
Unit tests for voice_io.captions.

Tests:
- Timeline building (line limits, sentence breaks, determinism)
- Character alignment to timed words
- Playback synchronization (containment, gaps, deferral, generations)
"""

import asyncio
import logging

import pytest

from voice_io.captions.alignment import words_from_alignment
from voice_io.captions.synchronizer import PlaybackSynchronizer
from voice_io.captions.timeline import build_timeline
from voice_io.core.models import CaptionTimeline, PlaybackPosition, TimedWord

EXAMPLE_WORDS = [
    TimedWord("Hello", 0.0, 0.4),
    TimedWord("world.", 0.4, 0.9),
    TimedWord("How", 1.5, 1.8),
    TimedWord("are", 1.8, 2.0),
    TimedWord("you?", 2.0, 2.5),
]


def spaced_words(count: int, gap: float = 0.0) -> list[TimedWord]:
    """count words of 0.5s each, separated by gap seconds."""
    words = []
    t = 0.0
    for i in range(count):
        words.append(TimedWord(f"w{i}", t, t + 0.5))
        t += 0.5 + gap
    return words


class TestBuildTimeline:
    """Tests for build_timeline."""

    def test_example_lines(self):
        timeline = build_timeline(EXAMPLE_WORDS)
        assert [line.text for line in timeline] == ["Hello world.", "How are you?"]

    def test_idempotent(self):
        assert build_timeline(EXAMPLE_WORDS) == build_timeline(EXAMPLE_WORDS)
        assert build_timeline(iter(EXAMPLE_WORDS)) == build_timeline(list(EXAMPLE_WORDS))

    def test_max_words(self):
        timeline = build_timeline(spaced_words(16))
        assert [len(line) for line in timeline] == [7, 7, 2]

    def test_custom_max_words(self):
        timeline = build_timeline(spaced_words(5), max_words=2)
        assert [len(line) for line in timeline] == [2, 2, 1]

    def test_terminator_forces_break(self):
        words = [TimedWord("Stop!", 0, 1), TimedWord("Really?", 1, 2), TimedWord("Yes", 2, 3)]
        timeline = build_timeline(words)
        assert [line.text for line in timeline] == ["Stop!", "Really?", "Yes"]

    def test_terminator_only_at_end(self):
        words = [TimedWord("e.g", 0, 1), TimedWord("3.5", 1, 2), TimedWord("ok", 2, 3)]
        assert len(build_timeline(words)) == 1

    def test_line_invariants(self):
        words = spaced_words(20)
        words[3] = TimedWord("end.", words[3].start_time, words[3].end_time)
        timeline = build_timeline(words, max_words=5)

        for line in timeline:
            assert 1 <= len(line) <= 5
            for word in line.words[:-1]:
                assert not word.text.endswith((".", "?", "!"))
        assert [w for line in timeline for w in line] == words

    def test_empty(self):
        timeline = build_timeline([])
        assert timeline == CaptionTimeline()
        assert len(timeline) == 0

    def test_invalid_max_words(self):
        with pytest.raises(ValueError):
            build_timeline(EXAMPLE_WORDS, max_words=0)


class TestWordsFromAlignment:
    """Tests for words_from_alignment."""

    def test_splits_on_whitespace(self):
        text = "Hi there."
        alignment = {
            "characters": list(text),
            "character_start_times_seconds": [i * 0.1 for i in range(len(text))],
            "character_end_times_seconds": [(i + 1) * 0.1 for i in range(len(text))],
        }

        words = words_from_alignment(alignment)

        assert [w.text for w in words] == ["Hi", "there."]
        assert words[0].start_time == pytest.approx(0.0)
        assert words[0].end_time == pytest.approx(0.2)
        assert words[1].start_time == pytest.approx(0.3)
        assert words[1].end_time == pytest.approx(0.9)

    def test_offset_and_repeated_spaces(self):
        alignment = {
            "characters": [" ", "a", " ", " ", "b", " "],
            "character_start_times_seconds": [0, 1, 2, 3, 4, 5],
            "character_end_times_seconds": [1, 2, 3, 4, 5, 6],
        }

        words = words_from_alignment(alignment, offset=10)

        assert words == [TimedWord("a", 11, 12), TimedWord("b", 14, 15)]

    def test_length_mismatch(self):
        alignment = {
            "characters": ["a", "b"],
            "character_start_times_seconds": [0],
            "character_end_times_seconds": [1, 2],
        }
        with pytest.raises(ValueError, match="mismatch"):
            words_from_alignment(alignment)

    def test_missing_key(self):
        with pytest.raises(ValueError, match="characters"):
            words_from_alignment({})


class TestPlaybackSynchronizer:
    """Tests for PlaybackSynchronizer.tick and lifecycle."""

    def make(self, words=EXAMPLE_WORDS):
        positions = []
        sync = PlaybackSynchronizer(on_position=positions.append)
        sync.load(build_timeline(words))
        return sync, positions

    def test_example_positions(self):
        sync, _ = self.make()

        position = sync.tick(0.5)
        assert position == PlaybackPosition(0, 1)
        assert sync.timeline.word_at(position).text == "world."

        position = sync.tick(1.6)
        assert position == PlaybackPosition(1, 0)
        assert sync.timeline.word_at(position).text == "How"

    def test_interior_times(self):
        sync, _ = self.make()
        expected = [(0.2, (0, 0)), (0.6, (0, 1)), (1.7, (1, 0)), (1.9, (1, 1)), (2.3, (1, 2))]
        for t, (line, word) in expected:
            assert sync.tick(t) == PlaybackPosition(line, word)

    def test_gap_retains_previous(self):
        sync, positions = self.make()
        sync.tick(0.8)
        assert sync.tick(1.2) == PlaybackPosition(0, 1)
        assert sync.tick(3.0) == PlaybackPosition(0, 1)
        assert positions == [PlaybackPosition(0, 1)]

    def test_before_first_word(self):
        words = [TimedWord("late", 1.0, 2.0)]
        sync, positions = self.make(words)
        assert sync.tick(0.5) is None
        assert positions == []

    def test_shared_boundary_picks_first(self):
        sync, _ = self.make()
        assert sync.tick(0.4) == PlaybackPosition(0, 0)

    def test_emits_only_on_change(self):
        sync, positions = self.make()
        for t in (0.1, 0.2, 0.3, 0.5, 0.6):
            sync.tick(t)
        assert positions == [PlaybackPosition(0, 0), PlaybackPosition(0, 1)]

    def test_clock_unavailable_defers(self):
        sync, positions = self.make()
        assert sync.tick(None) is None
        sync.tick(0.2)
        assert sync.tick(None) == PlaybackPosition(0, 0)
        assert positions == [PlaybackPosition(0, 0)]

    def test_seek_backwards(self):
        words = spaced_words(30, gap=0.1)
        sync, _ = self.make(words)
        timeline = sync.timeline

        assert timeline.word_at(sync.tick(words[25].start_time + 0.2)).text == "w25"
        assert timeline.word_at(sync.tick(words[2].start_time + 0.2)).text == "w2"
        assert timeline.word_at(sync.tick(words[29].end_time)).text == "w29"

    def test_overlap_first_match_and_warning(self, caplog):
        words = [TimedWord("a", 0.0, 1.0), TimedWord("b", 0.5, 1.5), TimedWord("c", 1.5, 2.0)]
        with caplog.at_level(logging.WARNING, logger="voice_io.captions.synchronizer"):
            sync, _ = self.make(words)

        assert "Overlapping caption words" in caplog.text

        # Move the cursor past the overlap, then come back into it
        sync.tick(1.8)
        assert sync.tick(0.7) == PlaybackPosition(0, 0)

    def test_stale_generation_ignored(self):
        sync, positions = self.make()
        old = sync.generation
        sync.load(build_timeline(EXAMPLE_WORDS))

        assert sync.tick(0.2, generation=old) is None
        assert positions == []
        assert sync.tick(0.2, generation=sync.generation) == PlaybackPosition(0, 0)

    def test_set_inactive_resets(self):
        sync, positions = self.make()
        sync.tick(1.9)

        sync.set_active(False)

        assert sync.position is None
        assert sync.line_index == 0
        assert sync.timeline is None
        assert positions == [PlaybackPosition(1, 1), None]
        assert sync.tick(0.2) is None

    def test_empty_timeline(self):
        sync, positions = self.make([])
        assert sync.tick(1.0) is None
        assert positions == []

    def test_invalid_tick_hz(self):
        with pytest.raises(ValueError):
            PlaybackSynchronizer(tick_hz=0)

    def test_callback_error_logged(self, caplog):
        def broken(position):
            raise RuntimeError("ui gone")

        sync = PlaybackSynchronizer(on_position=broken)
        sync.load(build_timeline(EXAMPLE_WORDS))
        assert sync.tick(0.2) == PlaybackPosition(0, 0)
        assert "Position callback error" in caplog.text


class TestPlaybackLoop:
    """Tests for the async tick loop."""

    @pytest.mark.asyncio
    async def test_loop_follows_clock_until_stopped(self):
        positions = []
        sync = PlaybackSynchronizer(on_position=positions.append, tick_hz=1000)
        times = iter([None, 0.1, 0.5, 1.2, 1.6])

        def clock():
            try:
                return next(times)
            except StopIteration:
                sync.stop()
                return None

        await asyncio.wait_for(sync.start(build_timeline(EXAMPLE_WORDS), clock), timeout=2)

        assert positions == [
            PlaybackPosition(0, 0),
            PlaybackPosition(0, 1),
            PlaybackPosition(1, 0),
            None,
        ]
        assert sync.active is False

    @pytest.mark.asyncio
    async def test_superseded_loop_never_publishes(self):
        positions = []
        sync = PlaybackSynchronizer(on_position=positions.append, tick_hz=200)

        first = asyncio.create_task(sync.start(build_timeline(EXAMPLE_WORDS), lambda: 0.1))
        await asyncio.sleep(0.05)
        assert sync.position == PlaybackPosition(0, 0)

        # New response: the old loop must exit without touching the new timeline
        second_timeline = build_timeline([TimedWord("Next", 5.0, 6.0)])
        second = asyncio.create_task(sync.start(second_timeline, lambda: 5.5))
        await asyncio.wait_for(first, timeout=1)
        await asyncio.sleep(0.05)

        assert sync.position == PlaybackPosition(0, 0)
        assert sync.timeline is second_timeline
        assert positions == [PlaybackPosition(0, 0), None, PlaybackPosition(0, 0)]

        sync.stop()
        await asyncio.wait_for(second, timeout=1)
        assert positions[-1] is None
