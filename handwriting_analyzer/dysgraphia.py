"""
Dysgraphia Indicators — Letter-level and spatial characteristics derived
from recognized word and line boxes, combined with image quality metrics
into formation, alignment, spacing and risk indicators.
"""

import logging
import numpy as np
from .models import (DysgraphiaIndicators, ImageQualityMetrics, LetterAnalysis,
                     RecognitionResult, RecognizedLine, RecognizedWord, SpatialAnalysis)

logger = logging.getLogger(__name__)

NEUTRAL = 0.5
LENIENT_FLOOR = 0.65
INDICATOR_FLOOR = 0.6
MAX_RISK = 0.4
LINE_TOLERANCE_PX = 10
BASELINE_SCALE_PX = 25


def _coefficient_of_variation(values: list[float]) -> float:
    mean = float(np.mean(values))
    return float(np.std(values)) / mean if mean > 0 else 0.0


def analyze_letter_characteristics(recognition: RecognitionResult) -> LetterAnalysis:
    words = recognition.words
    if not words:
        return LetterAnalysis(size_variation=NEUTRAL, slant_consistency=NEUTRAL,
                              formation_quality=NEUTRAL)

    heights = [w.bbox.height for w in words if w.bbox and w.bbox.height > 0]
    if len(heights) < 2:
        return LetterAnalysis(size_variation=NEUTRAL, slant_consistency=NEUTRAL,
                              formation_quality=recognition.confidence)

    size_variation = max(INDICATOR_FLOOR, 1 - _coefficient_of_variation(heights) * 1.5)

    # widths and text lengths are filtered independently, then paired by position
    widths = [w.bbox.width for w in words if w.bbox and w.bbox.width > 0]
    lengths = [len(w.text) for w in words if w.text]
    width_per_char = [width / length for width, length in zip(widths, lengths)]

    slant_consistency = LENIENT_FLOOR
    if len(width_per_char) > 1:
        slant_consistency = max(LENIENT_FLOOR, 1 - _coefficient_of_variation(width_per_char) * 1.2)

    return LetterAnalysis(size_variation=size_variation, slant_consistency=slant_consistency,
                          formation_quality=recognition.confidence)


def _words_in_line(words: tuple[RecognizedWord, ...], line: RecognizedLine) -> list[RecognizedWord]:
    top = line.bbox.y0 if line.bbox else 0
    bottom = line.bbox.y1 if line.bbox else 0
    return [w for w in words if w.bbox
            and w.bbox.y0 >= top - LINE_TOLERANCE_PX
            and w.bbox.y1 <= bottom + LINE_TOLERANCE_PX]


def analyze_spatial_characteristics(recognition: RecognitionResult) -> SpatialAnalysis:
    words = recognition.words
    lines = recognition.lines

    word_spacing_consistency = LENIENT_FLOOR
    if lines:
        spacings = []
        for line in lines:
            line_words = sorted(_words_in_line(words, line), key=lambda w: w.bbox.x0)
            for prev, curr in zip(line_words, line_words[1:]):
                spacing = curr.bbox.x0 - prev.bbox.x1
                if spacing > 0:
                    spacings.append(spacing)
        if len(spacings) > 1:
            word_spacing_consistency = max(LENIENT_FLOOR, 1 - _coefficient_of_variation(spacings) * 0.8)

    baseline_alignment = LENIENT_FLOOR
    if len(lines) > 1:
        variations = []
        for line in lines:
            line_words = _words_in_line(words, line)
            if len(line_words) > 1:
                bottoms = np.array([w.bbox.y1 for w in line_words], dtype=np.float64)
                variations.append(float(np.mean(np.abs(bottoms - bottoms.mean()))))
        if variations:
            baseline_alignment = max(LENIENT_FLOOR, 1 - float(np.mean(variations)) / BASELINE_SCALE_PX)

    return SpatialAnalysis(word_spacing_consistency=word_spacing_consistency,
                           baseline_alignment=baseline_alignment)


def _clamp_risk(value: float) -> float:
    return max(0.0, min(MAX_RISK, value))


def calculate_dysgraphia_indicators(recognition: RecognitionResult, metrics: ImageQualityMetrics,
                                    letters: LetterAnalysis,
                                    spatial: SpatialAnalysis) -> DysgraphiaIndicators:
    letter_formation = max(INDICATOR_FLOOR, recognition.confidence * 0.6 + letters.size_variation * 0.4)
    line_alignment = max(INDICATOR_FLOOR,
                         metrics.line_consistency * 0.5 + spatial.baseline_alignment * 0.5)
    spacing = max(INDICATOR_FLOOR, spatial.word_spacing_consistency * 0.6
                  + min(1.0, metrics.text_density * 1.2) * 0.4)
    consistency = max(INDICATOR_FLOOR, letters.slant_consistency * 0.5 + letters.size_variation * 0.5)

    writing_risk = _clamp_risk(1 - (letter_formation * 0.4 + line_alignment * 0.3 + spacing * 0.3))
    motor_risk = _clamp_risk(1 - (letter_formation * 0.5 + consistency * 0.5))
    visual_risk = _clamp_risk(1 - (line_alignment * 0.5 + spacing * 0.5))

    indicators = DysgraphiaIndicators(
        letter_formation=round(letter_formation, 2), line_alignment=round(line_alignment, 2),
        spacing=round(spacing, 2), consistency=round(consistency, 2),
        writing_risk=round(writing_risk, 2), motor_coordination_risk=round(motor_risk, 2),
        visual_processing_risk=round(visual_risk, 2))
    logger.debug(f"  Dysgraphia indicators: {indicators}")
    return indicators
