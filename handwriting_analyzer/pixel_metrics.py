"""
Pixel Metrics — Image quality signals computed directly from a decoded
RGBA pixel buffer: contrast, text (ink) density and line-spacing consistency.

All scores are normalized to [0, 1]. Degenerate buffers fall back to
neutral values so a usable result can still be produced.
"""

import logging
import numpy as np
from .models import ImageQualityMetrics, PixelBuffer

logger = logging.getLogger(__name__)

INK_THRESHOLD = 200
CONTRAST_BOOST = 1.2
ROW_LINE_THRESHOLD = 0.05
NEUTRAL_SCORE = 0.5
FEW_GAPS_SCORE = 0.6

DENSITY_SPARSE = 0.05
DENSITY_PEAK = 0.2
DENSITY_DENSE = 0.5


def _clamp(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


def _ink_mask(sums: np.ndarray) -> np.ndarray:
    # luminance = sum / 3, so compare against the threshold scaled by 3
    return sums < 3 * INK_THRESHOLD


def _contrast_from_sums(sums: np.ndarray) -> float:
    contrast = (float(sums.max()) / 3 - float(sums.min()) / 3) / 255
    return _clamp(contrast * CONTRAST_BOOST)


def compute_contrast(buffer: PixelBuffer) -> float:
    """Spread between darkest and brightest luminance, boosted and clamped."""
    if buffer.is_empty:
        return 0.0
    return _contrast_from_sums(buffer.channel_sum())


def density_score(raw_density: float) -> float:
    """Map a raw ink ratio onto a score that peaks around 20% ink."""
    if raw_density < DENSITY_SPARSE:
        score = raw_density * 4
    elif raw_density <= DENSITY_PEAK:
        score = 0.2 + raw_density * 4
    elif raw_density > DENSITY_DENSE:
        score = max(0.0, 1 - (raw_density - DENSITY_DENSE))
    else:
        score = 1 - ((raw_density - DENSITY_PEAK) / 0.3) * 0.2
    return _clamp(score)


def _density_from_mask(ink: np.ndarray) -> float:
    raw_density = int(np.count_nonzero(ink)) / ink.size
    logger.debug(f"  Raw ink density: {raw_density:.4f}")
    return density_score(raw_density)


def compute_text_density(buffer: PixelBuffer) -> float:
    if buffer.is_empty:
        return 0.0
    return _density_from_mask(_ink_mask(buffer.channel_sum()))


def _line_starts(row_densities: np.ndarray) -> list[int]:
    starts = []
    in_line = False
    for i, density in enumerate(row_densities):
        if density > ROW_LINE_THRESHOLD and not in_line:
            starts.append(i)
            in_line = True
        elif density <= ROW_LINE_THRESHOLD:
            in_line = False
    return starts


def compute_line_consistency(buffer: PixelBuffer) -> float:
    """
    Score how evenly successive text lines are spaced vertically.

    A row belongs to a text line when its ink fraction exceeds
    ROW_LINE_THRESHOLD. The distances between consecutive line starts are
    the inter-line gaps; consistency is 1 minus their coefficient of
    variation.
    """
    if buffer.is_empty:
        return NEUTRAL_SCORE
    return _consistency_from_mask(_ink_mask(buffer.channel_sum()))


def _consistency_from_mask(ink: np.ndarray) -> float:
    row_densities = np.count_nonzero(ink, axis=1) / ink.shape[1]
    starts = _line_starts(row_densities)
    if len(starts) < 2:
        return NEUTRAL_SCORE
    gaps = np.diff(np.asarray(starts, dtype=np.float64))
    if len(gaps) < 2:
        return FEW_GAPS_SCORE
    mean_gap = float(np.mean(gaps))
    std_gap = float(np.std(gaps))
    logger.debug(f"  Line starts: {starts}, mean gap {mean_gap:.2f}, std {std_gap:.2f}")
    return _clamp(max(0.0, 1 - std_gap / mean_gap))


def neutral_metrics() -> ImageQualityMetrics:
    return ImageQualityMetrics(contrast_score=NEUTRAL_SCORE, text_density=NEUTRAL_SCORE,
                               line_consistency=NEUTRAL_SCORE, degraded=True)


def analyze_image_quality(buffer: PixelBuffer | None) -> ImageQualityMetrics:
    """
    Compute all image quality metrics for a buffer.

    A missing or zero-size buffer yields neutral 0.5 scores flagged as
    degraded instead of an error.
    """
    if buffer is None or buffer.is_empty:
        size = f"{buffer.width}x{buffer.height}" if buffer is not None else "none"
        logger.warning(f"Image quality metrics unavailable for buffer ({size}); using neutral defaults")
        return neutral_metrics()

    sums = buffer.channel_sum()
    ink = _ink_mask(sums)
    metrics = ImageQualityMetrics(contrast_score=_contrast_from_sums(sums),
                                  text_density=_density_from_mask(ink),
                                  line_consistency=_consistency_from_mask(ink),
                                  width=buffer.width, height=buffer.height)
    logger.debug(f"  Image metrics: contrast={metrics.contrast_score:.3f}, "
                 f"density={metrics.text_density:.3f}, "
                 f"lines={metrics.line_consistency:.3f}")
    return metrics
