"""
Readability Scorer — Combines recognition confidence with image quality
metrics into a single bounded readability score.
"""

import logging
from .models import ImageQualityMetrics, ReadabilityLabel, RecognitionResult

logger = logging.getLogger(__name__)

WEIGHTS = {
    "ocr_confidence": 0.40,
    "text_density": 0.15,
    "contrast_score": 0.20,
    "line_consistency": 0.25,
}
DETECTED_TEXT_BONUS = 0.05
LOW_EVIDENCE_MAX_WORDS = 3
LOW_EVIDENCE_MAX_CONFIDENCE = 0.5
LOW_EVIDENCE_PENALTY = 0.7

READABILITY_LABELS = [
    (0.8, ReadabilityLabel("Excellent", "#22c55e")),
    (0.6, ReadabilityLabel("Good", "#84cc16")),
    (0.4, ReadabilityLabel("Fair", "#eab308")),
    (0.2, ReadabilityLabel("Needs Improvement", "#f97316")),
]
LOWEST_LABEL = ReadabilityLabel("Difficult to Read", "#ef4444")


def calculate_readability_score(recognition: RecognitionResult, metrics: ImageQualityMetrics) -> float:
    """
    Weighted sum of the four signals, then the detected-text bonus and the
    low-evidence penalty, in that order. Both adjustments can apply to the
    same sample (1-2 words at low confidence).
    """
    confidence = recognition.confidence
    score = 0.0
    score += confidence * WEIGHTS["ocr_confidence"]
    score += metrics.text_density * WEIGHTS["text_density"]
    score += metrics.contrast_score * WEIGHTS["contrast_score"]
    score += metrics.line_consistency * WEIGHTS["line_consistency"]

    if recognition.word_count > 0:
        score = min(1.0, score + DETECTED_TEXT_BONUS)
    if recognition.word_count < LOW_EVIDENCE_MAX_WORDS and confidence < LOW_EVIDENCE_MAX_CONFIDENCE:
        score *= LOW_EVIDENCE_PENALTY

    score = max(0.0, min(1.0, score))
    logger.debug(f"  Readability score: {score:.4f} (words={recognition.word_count}, conf={confidence:.3f})")
    return score


def round_score(score: float) -> float:
    return round(score, 2)


def readability_label(score: float) -> ReadabilityLabel:
    for threshold, label in READABILITY_LABELS:
        if score >= threshold:
            return label
    return LOWEST_LABEL
