"""
Configuration for the lesson generation pipeline.
"""
import os
from dataclasses import dataclass
from typing import Optional


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == '':
        return None
    return float(value)


@dataclass
class PipelineConfig:
    """Application configuration loaded from environment variables"""

    # Generation service
    openai_api_key: str = ''
    generation_model: str = "gpt-4o-mini"
    generation_temperature: float = 0.5
    generation_max_tokens: int = 16000
    expansion_model: str = "gpt-4o-mini"
    expansion_temperature: float = 0.6
    narration_style: str = "simple, friendly English with short sentences"

    # Enrichment
    narration_word_floor: int = 90
    narration_word_ceiling: int = 140
    max_words_per_line: int = 14
    max_narration_lines: int = 4

    # Layout (canvas pixels / milliseconds)
    base_x: float = 40
    base_y: float = 60
    row_height: float = 48
    line_height: float = 40
    fraction_bar_offset: float = 8
    practice_gap: float = 24
    default_speed: str = "word"
    default_delay_per_unit: float = 350

    # Text-to-speech
    tts_language_code: str = "en-US"
    tts_voice: str = "en-US-Neural2-F"
    tts_speaking_rate: float = 1.0
    tts_min_audio_bytes: int = 200

    # Playback (seconds)
    playback_event_delay: float = 0.5
    playback_step_gap: float = 0.7
    playback_include_practice: bool = False
    playback_max_pause_seconds: Optional[float] = None

    # Retry configuration
    max_retries: int = 3

    # Logging
    log_level: str = "INFO"


def load_config() -> PipelineConfig:
    """Load configuration from environment variables"""
    return PipelineConfig(
        # Generation
        openai_api_key=os.getenv('OPENAI_API_KEY', ''),
        generation_model=os.getenv('LESSON_GENERATION_MODEL', 'gpt-4o-mini'),
        generation_temperature=float(os.getenv('LESSON_GENERATION_TEMPERATURE', '0.5')),
        generation_max_tokens=int(os.getenv('LESSON_GENERATION_MAX_TOKENS', '16000')),
        expansion_model=os.getenv('NARRATION_EXPANSION_MODEL', 'gpt-4o-mini'),
        expansion_temperature=float(os.getenv('NARRATION_EXPANSION_TEMPERATURE', '0.6')),
        narration_style=os.getenv('NARRATION_STYLE', 'simple, friendly English with short sentences'),

        # Enrichment
        narration_word_floor=int(os.getenv('NARRATION_WORD_FLOOR', '90')),
        narration_word_ceiling=int(os.getenv('NARRATION_WORD_CEILING', '140')),
        max_words_per_line=int(os.getenv('MAX_WORDS_PER_LINE', '14')),
        max_narration_lines=int(os.getenv('MAX_NARRATION_LINES', '4')),

        # Layout
        base_x=float(os.getenv('LAYOUT_BASE_X', '40')),
        base_y=float(os.getenv('LAYOUT_BASE_Y', '60')),
        row_height=float(os.getenv('LAYOUT_ROW_HEIGHT', '48')),
        line_height=float(os.getenv('LAYOUT_LINE_HEIGHT', '40')),
        fraction_bar_offset=float(os.getenv('LAYOUT_FRACTION_BAR_OFFSET', '8')),
        practice_gap=float(os.getenv('LAYOUT_PRACTICE_GAP', '24')),
        default_speed=os.getenv('LAYOUT_DEFAULT_SPEED', 'word'),
        default_delay_per_unit=float(os.getenv('LAYOUT_DEFAULT_DELAY_PER_UNIT', '350')),

        # TTS
        tts_language_code=os.getenv('TTS_LANGUAGE_CODE', 'en-US'),
        tts_voice=os.getenv('TTS_VOICE', 'en-US-Neural2-F'),
        tts_speaking_rate=float(os.getenv('TTS_SPEAKING_RATE', '1.0')),
        tts_min_audio_bytes=int(os.getenv('TTS_MIN_AUDIO_BYTES', '200')),

        # Playback
        playback_event_delay=float(os.getenv('PLAYBACK_EVENT_DELAY', '0.5')),
        playback_step_gap=float(os.getenv('PLAYBACK_STEP_GAP', '0.7')),
        playback_include_practice=os.getenv('PLAYBACK_INCLUDE_PRACTICE', '0') == '1',
        playback_max_pause_seconds=_optional_float(os.getenv('PLAYBACK_MAX_PAUSE_SECONDS')),

        # Retry
        max_retries=int(os.getenv('MAX_RETRIES', '3')),

        # Logging
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
    )


# Global config instance
config = load_config()
