import json
import asyncio
import logging
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from lesson_pipeline.config import config
from lesson_pipeline.errors import LessonNotFound, PipelineError

from .playback import PlaybackSession
from .services import load_lesson_script

logger = logging.getLogger(__name__)


class PlaybackConsumer(AsyncWebsocketConsumer):
    """Streams a persisted lesson script to one client.

    Client protocol:
      - JSON { type: 'PAUSE' } holds the stream before the next event
      - JSON { type: 'RESUME' } continues from the same position

    Server sends:
      - { type: 'STEP_START', chunkId, audioRef? }
      - one flat directive record per whiteboard directive
      - { type: 'STEP_END', chunkId }
      - { type: 'LESSON_END' }, then closes
    """

    async def connect(self):
        self.lesson_id = int(self.scope['url_route']['kwargs']['lesson_id'])
        self._session = None
        self._playback_task = None

        try:
            script = await database_sync_to_async(load_lesson_script)(self.lesson_id)
        except (LessonNotFound, PipelineError) as e:
            logger.info(f"Rejecting playback for lesson {self.lesson_id}: {e}")
            await self.close()
            return

        await self.accept()
        self._session = PlaybackSession(
            script,
            self._send_json,
            event_delay=config.playback_event_delay,
            step_gap=config.playback_step_gap,
            include_practice=config.playback_include_practice,
            max_pause_seconds=config.playback_max_pause_seconds,
        )
        self._playback_task = asyncio.create_task(self._stream())
        logger.info(f"Playback started for lesson {self.lesson_id}")

    async def disconnect(self, code):
        if self._playback_task and not self._playback_task.done():
            self._playback_task.cancel()
        logger.info(f"Playback for lesson {self.lesson_id} disconnected ({code})")

    async def receive(self, text_data=None, bytes_data=None):
        if text_data is None or self._session is None:
            return
        try:
            msg = json.loads(text_data)
        except ValueError:
            logger.debug(f"Ignoring non-JSON message on lesson {self.lesson_id}")
            return
        if isinstance(msg, dict):
            self._session.handle_control(msg)

    async def _stream(self):
        try:
            await self._session.run()
        except asyncio.CancelledError:
            return
        except Exception as e:
            logger.error(f"Playback for lesson {self.lesson_id} failed: {e}", exc_info=True)
        await self.close()

    async def _send_json(self, payload: dict):
        await self.send(text_data=json.dumps(payload))
