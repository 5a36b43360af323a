"""Best-effort language detection.

Wraps ``lingua``.  The detector is expensive to build, so it is created
once on first use and shared across threads.
"""

from __future__ import annotations

import logging
import threading

from lingua import LanguageDetector, LanguageDetectorBuilder

logger = logging.getLogger(__name__)

_detector: LanguageDetector | None = None
_detector_lock = threading.Lock()


def _get_detector() -> LanguageDetector:
    global _detector
    with _detector_lock:
        if _detector is None:
            _detector = LanguageDetectorBuilder.from_all_spoken_languages().build()
    return _detector


def detect_language(text: str) -> str:
    """Return the lower-case ISO 639-1 code of *text*, or ``""`` if unknown.

    Never raises.
    """
    if not text or not text.strip():
        return ""
    try:
        language = _get_detector().detect_language_of(text)
    except Exception as exc:
        logger.warning(
            "language_detection_failed",
            extra={"error_type": type(exc).__name__, "error_message": str(exc)},
        )
        return ""
    if language is None:
        return ""
    return language.iso_code_639_1.name.lower()
