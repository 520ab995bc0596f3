"""
Lesson content pipeline.

This package turns generated lesson content into a persisted whiteboard script:
1. Flat-nullable directive decoding and validation
2. Narration expansion and whiteboard synthesis
3. Deterministic layout and timing
4. Persistence and per-chunk audio synthesis
"""
