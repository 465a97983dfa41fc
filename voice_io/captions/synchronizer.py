"""
Playback synchronizer.

Maps an advancing playback clock to the live (line, word) position of a
CaptionTimeline. Each tick:

  1. t is None (no audio attached yet)  -> defer, keep current position
  2. a word's [start, end] contains t   -> first such word in sequence order
  3. t falls in a gap                   -> keep the previous position

Updates are published through on_position only when the position changes.
The search is O(n) per tick in the worst case; it starts from the last
matched index and widens outward, which makes steady playback O(1).

Every load()/stop() bumps a generation token. A tick loop started for an
older response checks the token and never publishes into a newer one.
"""

import asyncio
import logging
from collections.abc import Callable

from ..config.settings import TICK_HZ
from ..core.models import CaptionTimeline, PlaybackPosition, TimedWord

logger = logging.getLogger(__name__)

# Returns playback time in seconds, or None when no track is attached
PlaybackClock = Callable[[], float | None]


class PlaybackSynchronizer:
    """Track the live caption word for one spoken response at a time."""

    def __init__(
        self,
        on_position: Callable[[PlaybackPosition | None], None] | None = None,
        tick_hz: float = TICK_HZ,
    ):
        """
        Args:
            on_position: Called with the new position whenever it changes
            tick_hz: Tick rate of the loop started by start()
        """
        if tick_hz <= 0:
            raise ValueError(f"tick_hz must be positive, got {tick_hz}")

        self.on_position = on_position
        self.tick_hz = tick_hz

        self.timeline: CaptionTimeline | None = None
        self.position: PlaybackPosition | None = None
        self.generation = 0
        self.active = False

        self._entries: list[tuple[int, int, TimedWord]] = []
        self._max_end: list[float] = []  # running max of end_time up to each entry
        self._cursor = 0

    @property
    def line_index(self) -> int:
        """Line to display (0 when no word is active)."""
        return self.position.line_index if self.position else 0

    def load(self, timeline: CaptionTimeline) -> int:
        """
        Take ownership of a new timeline and reset to "none".

        Returns:
            The new generation token
        """
        self.generation += 1
        self.timeline = timeline
        self._entries = [
            (line_index, word_index, word)
            for line_index, line in enumerate(timeline.lines)
            for word_index, word in enumerate(line.words)
        ]

        self._max_end = []
        running = float("-inf")
        previous: TimedWord | None = None
        for _, _, word in self._entries:
            if previous is not None and word.start_time < previous.end_time:
                logger.warning(
                    f"Overlapping caption words: {previous.text!r} "
                    f"[{previous.start_time}, {previous.end_time}] and {word.text!r} "
                    f"[{word.start_time}, {word.end_time}]; first match wins"
                )
            running = max(running, word.end_time)
            self._max_end.append(running)
            previous = word

        self._cursor = 0
        self._publish(None)
        logger.debug(f"Loaded timeline: {len(timeline)} lines, {len(self._entries)} words (gen {self.generation})")
        return self.generation

    def tick(self, t: float | None, generation: int | None = None) -> PlaybackPosition | None:
        """
        Advance to playback time t.

        Args:
            t: Playback time in seconds, or None if the clock is unavailable
            generation: Token of the caller's response; stale tokens are ignored

        Returns:
            The current position (None if no word has been active yet)
        """
        if generation is not None and generation != self.generation:
            return None

        if t is None or not self._entries:
            return self.position

        index = self._find(t)
        if index is None:
            return self.position

        self._cursor = index
        line_index, word_index, _ = self._entries[index]
        self._publish(PlaybackPosition(line_index, word_index))
        return self.position

    def _find(self, t: float) -> int | None:
        entries = self._entries
        count = len(entries)
        cursor = min(self._cursor, count - 1)

        hit = None
        for distance in range(count):
            after = cursor + distance
            before = cursor - distance
            if after >= count and before < 0:
                break
            if after < count and entries[after][2].contains(t):
                hit = after
                break
            if before >= 0 and entries[before][2].contains(t):
                hit = before
                break

        if hit is None:
            return None

        # Earlier entries can still contain t only while their running max end reaches it
        index = hit - 1
        while index >= 0 and self._max_end[index] >= t:
            if entries[index][2].contains(t):
                hit = index
            index -= 1

        return hit

    def _publish(self, position: PlaybackPosition | None):
        if position == self.position:
            return
        self.position = position
        if self.on_position:
            try:
                self.on_position(position)
            except Exception as e:
                logger.error(f"Position callback error: {e}")

    async def start(self, timeline: CaptionTimeline, clock: PlaybackClock) -> None:
        """
        Load timeline and tick until stopped or superseded.

        Args:
            timeline: Caption lines of the response being played
            clock: Returns current playback time, or None before playback starts
        """
        generation = self.load(timeline)
        self.active = True
        interval = 1.0 / self.tick_hz

        logger.debug(f"Caption loop started (gen {generation}, {self.tick_hz:g} Hz)")
        while self.active and generation == self.generation:
            self.tick(clock(), generation)
            await asyncio.sleep(interval)
        logger.debug(f"Caption loop ended (gen {generation})")

    def set_active(self, active: bool) -> None:
        """Signal playback state; going inactive resets to "none" and ends the loop."""
        if active:
            self.active = True
            return

        self.active = False
        self.generation += 1
        self.timeline = None
        self._entries = []
        self._max_end = []
        self._cursor = 0
        self._publish(None)

    def stop(self) -> None:
        self.set_active(False)
