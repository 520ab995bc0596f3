"""
Audio synthesis service - narration to MP3 via Google Cloud Text-to-Speech.
"""
import logging
from typing import Optional

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils.text import get_valid_filename

from lesson_pipeline.config import config
from lesson_pipeline.errors import AudioSynthesisFailed

logger = logging.getLogger(__name__)


class AudioSynthesisService:
    """Synthesizes chunk narration and stores it in the media storage"""

    def __init__(self, client=None):
        if client is not None:
            self.tts_client = client
            return
        try:
            from google.cloud import texttospeech
            self.tts_client = texttospeech.TextToSpeechClient()
        except Exception as e:
            logger.error(f"Google TTS client initialization failed: {e}")
            self.tts_client = None

    @property
    def available(self) -> bool:
        return self.tts_client is not None

    def synthesize(self, text: str) -> bytes:
        """
        Synthesize speech for `text`.

        Raises:
            AudioSynthesisFailed: TTS unavailable, the call failed, or the
                returned payload is too small to be real audio
        """
        if not self.tts_client:
            raise AudioSynthesisFailed("TTS client not available")

        from google.cloud import texttospeech

        try:
            response = self.tts_client.synthesize_speech(
                input=texttospeech.SynthesisInput(text=text),
                voice=texttospeech.VoiceSelectionParams(
                    language_code=config.tts_language_code,
                    name=config.tts_voice,
                ),
                audio_config=texttospeech.AudioConfig(
                    audio_encoding=texttospeech.AudioEncoding.MP3,
                    speaking_rate=config.tts_speaking_rate,
                ),
            )
        except Exception as e:
            raise AudioSynthesisFailed(str(e)) from e

        audio = response.audio_content or b""
        if len(audio) < config.tts_min_audio_bytes:
            raise AudioSynthesisFailed(f"audio payload too small ({len(audio)} bytes)")
        return audio

    def store(self, lesson_id: int, chunk_id: str, audio: bytes) -> str:
        """
        Save audio bytes and return the public URL used as the chunk's audio ref.

        Raises:
            AudioSynthesisFailed: the chunk id gives no usable file name or
                the storage backend rejected the write
        """
        try:
            name = get_valid_filename(f"{chunk_id}.mp3")
            path = f"lessons/{lesson_id}/audio/{name}"
            if default_storage.exists(path):
                default_storage.delete(path)
            saved_path = default_storage.save(path, ContentFile(audio))
            return default_storage.url(saved_path)
        except Exception as e:
            raise AudioSynthesisFailed(f"could not store audio for chunk {chunk_id!r}: {e}") from e


# Global singleton
_audio_service: Optional[AudioSynthesisService] = None


def get_audio_service() -> AudioSynthesisService:
    """Get or create the global audio synthesis service"""
    global _audio_service
    if _audio_service is None:
        _audio_service = AudioSynthesisService()
    return _audio_service
