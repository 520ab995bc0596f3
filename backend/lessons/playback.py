"""
Playback sessions: replay a persisted script as a paced event stream.

The event sequence is computed once from the script when the session is
created; pause/resume only changes when the next event goes out, never which
event it is.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from lesson_pipeline.schema import encode_directive
from lesson_pipeline.types import Script

logger = logging.getLogger(__name__)

STEP_START = "STEP_START"
STEP_END = "STEP_END"
LESSON_END = "LESSON_END"

PAUSE = "PAUSE"
RESUME = "RESUME"

# Session states
CONNECTING = "CONNECTING"
STREAMING = "STREAMING"
PAUSED = "PAUSED"
ENDED = "ENDED"

# (event, seconds to wait after sending it)
TimelineEntry = Tuple[Dict[str, Any], float]


def _step_events(step_id: str, directives, audio_ref: Optional[str],
                 event_delay: float, step_gap: float) -> List[TimelineEntry]:
    start: Dict[str, Any] = {"type": STEP_START, "chunkId": step_id}
    if audio_ref:
        start["audioRef"] = audio_ref
    entries: List[TimelineEntry] = [(start, event_delay)]
    for directive in directives or []:
        entries.append((encode_directive(directive), event_delay))
    entries.append(({"type": STEP_END, "chunkId": step_id}, step_gap))
    return entries


def build_event_timeline(
    script: Script,
    include_practice: bool = False,
    event_delay: float = 0.5,
    step_gap: float = 0.7,
) -> List[TimelineEntry]:
    """Flatten a script into the exact ordered sequence a client will receive."""
    timeline: List[TimelineEntry] = []
    for chunk in script.chunks:
        timeline.extend(
            _step_events(chunk.id, chunk.directives, chunk.audio_ref, event_delay, step_gap)
        )
    if include_practice:
        for index, item in enumerate(script.practice_items, start=1):
            timeline.extend(
                _step_events(f"practice-{index}", item.directives, None, event_delay, step_gap)
            )
    timeline.append(({"type": LESSON_END}, 0.0))
    return timeline


class PlaybackSession:
    """
    Per-connection playback state machine.

    CONNECTING -> STREAMING -> PAUSED <-> STREAMING -> ENDED

    `cursor` is the index of the next event to send. A pause that outlasts
    `max_pause_seconds` (when set) ends the session.
    """

    def __init__(
        self,
        script: Script,
        send: Callable[[Dict[str, Any]], Awaitable[None]],
        *,
        event_delay: float = 0.5,
        step_gap: float = 0.7,
        include_practice: bool = False,
        max_pause_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.timeline = build_event_timeline(script, include_practice, event_delay, step_gap)
        self.send = send
        self.max_pause_seconds = max_pause_seconds
        self.sleep = sleep
        self.cursor = 0
        self.state = CONNECTING
        self.timed_out = False
        self._resumed = asyncio.Event()
        self._resumed.set()

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    def pause(self) -> None:
        if self.state in (STREAMING, CONNECTING):
            self._resumed.clear()
            if self.state == STREAMING:
                self.state = PAUSED
            logger.debug(f"Playback paused at event {self.cursor}")

    def resume(self) -> None:
        if self.state == ENDED:
            return
        self._resumed.set()
        if self.state == PAUSED:
            self.state = STREAMING
        logger.debug(f"Playback resumed at event {self.cursor}")

    def handle_control(self, message: Dict[str, Any]) -> None:
        kind = message.get("type")
        if kind == PAUSE:
            self.pause()
        elif kind == RESUME:
            self.resume()
        else:
            logger.debug(f"Ignoring unknown control message: {kind!r}")

    async def _wait_while_paused(self) -> bool:
        """Block until resumed; False when the pause limit is exceeded."""
        if not self.paused:
            return True
        try:
            if self.max_pause_seconds is None:
                await self._resumed.wait()
            else:
                await asyncio.wait_for(self._resumed.wait(), timeout=self.max_pause_seconds)
        except asyncio.TimeoutError:
            logger.info(f"Playback paused longer than {self.max_pause_seconds}s, ending session")
            self.timed_out = True
            return False
        return True

    async def run(self) -> None:
        if self.state == CONNECTING:
            self.state = PAUSED if self.paused else STREAMING
        try:
            while self.cursor < len(self.timeline):
                if not await self._wait_while_paused():
                    return
                event, delay = self.timeline[self.cursor]
                await self.send(event)
                self.cursor += 1
                if delay:
                    await self.sleep(delay)
        finally:
            self.state = ENDED
