"""
Generation service - structured lesson content and narration rewrites via OpenAI.
"""
import json
import logging
import time
from typing import Any, Dict, Optional

from lesson_pipeline.config import config
from lesson_pipeline.errors import GenerationFailed
from lesson_pipeline.prompts import (
    LESSON_GENERATION_SYSTEM_PROMPT,
    NARRATION_EXPANSION_SYSTEM_PROMPT,
    build_expansion_prompt,
    build_lesson_prompt,
)
from lesson_pipeline.schema import lesson_json_schema
from lesson_pipeline.types import LessonRequest

logger = logging.getLogger(__name__)


class LessonGenerationService:
    """Generates raw lesson scripts and narration expansions using OpenAI"""

    def __init__(self, client=None):
        if client is not None:
            self.client = client
            return
        try:
            from openai import OpenAI
            if not config.openai_api_key:
                raise ValueError("OPENAI_API_KEY not set")
            self.client = OpenAI(api_key=config.openai_api_key)
        except Exception as e:
            logger.error(f"Failed to initialize OpenAI client: {e}")
            self.client = None

    @property
    def available(self) -> bool:
        return self.client is not None

    def generate_lesson_content(self, request: LessonRequest) -> Dict[str, Any]:
        """
        Ask the model for a lesson in the flat-nullable structured format.

        The returned dict is untrusted; callers must decode it with
        lesson_pipeline.schema.decode_script.

        Raises:
            GenerationFailed: no client, or no parseable JSON after all retries
        """
        if not self.client:
            raise GenerationFailed("OpenAI client not initialized")

        user_prompt = build_lesson_prompt(
            topic=request.topic,
            grade_level=request.grade_level,
            chunk_count=request.chunk_count,
            practice_count=request.practice_count,
            narration_style=config.narration_style,
            word_floor=config.narration_word_floor,
            word_ceiling=config.narration_word_ceiling,
        )

        last_error: Optional[Exception] = None
        for attempt in range(config.max_retries):
            try:
                logger.info(f"Generating lesson attempt {attempt + 1}/{config.max_retries}")
                response = self.client.chat.completions.create(
                    model=config.generation_model,
                    messages=[
                        {"role": "system", "content": LESSON_GENERATION_SYSTEM_PROMPT},
                        {"role": "user", "content": user_prompt},
                    ],
                    response_format={
                        "type": "json_schema",
                        "json_schema": {
                            "name": "lesson_script",
                            "schema": lesson_json_schema(),
                            "strict": True,
                        },
                    },
                    temperature=config.generation_temperature,
                    max_tokens=config.generation_max_tokens,
                )
                content = response.choices[0].message.content or ""
                raw = json.loads(content)
                if not isinstance(raw, dict):
                    raise ValueError("Model did not return a JSON object")
                logger.info(f"Generated lesson with {len(raw.get('chunks') or [])} chunks")
                return raw
            except Exception as e:
                last_error = e
                logger.error(f"Lesson generation attempt {attempt + 1} failed: {e}")
                if attempt < config.max_retries - 1:
                    time.sleep(1)

        raise GenerationFailed(f"Model did not return JSON: {last_error}")

    def expand_narration(self, title: str, narration: str) -> str:
        """Rewrite a short narration to the configured word band."""
        if not self.client:
            raise GenerationFailed("OpenAI client not initialized")

        response = self.client.chat.completions.create(
            model=config.expansion_model,
            messages=[
                {"role": "system", "content": NARRATION_EXPANSION_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_expansion_prompt(
                        title=title,
                        narration=narration,
                        narration_style=config.narration_style,
                        word_floor=config.narration_word_floor,
                        word_ceiling=config.narration_word_ceiling,
                    ),
                },
            ],
            temperature=config.expansion_temperature,
        )
        return (response.choices[0].message.content or "").strip()


# Global singleton
_generation_service: Optional[LessonGenerationService] = None


def get_generation_service() -> LessonGenerationService:
    """Get or create the global generation service"""
    global _generation_service
    if _generation_service is None:
        _generation_service = LessonGenerationService()
    return _generation_service
