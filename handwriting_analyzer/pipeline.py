"""
Analysis Pipeline — Runs one handwriting image through decoding, text
recognition, image quality metrics, scoring and findings, reporting
progress at fixed checkpoints.

A run either returns a complete result or raises an AnalysisError; there
are no partial results and no retries.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from .dysgraphia import (analyze_letter_characteristics, analyze_spatial_characteristics,
                         calculate_dysgraphia_indicators)
from .errors import AnalysisError, DecodeError, RecognitionError
from .findings import degraded_finding, generate_advanced_findings, generate_findings
from .image_loader import decode_image
from .models import (AdvancedAnalysisResult, AnalysisResult, BatchItem, BatchReport,
                     ImageQualityMetrics, RecognitionResult)
from .ocr_engine import RecognitionAdapter, create_adapter
from .pixel_metrics import analyze_image_quality
from .scoring import calculate_readability_score, round_score

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Failed to analyze handwriting: "
DEFAULT_BATCH_WORKERS = 4


class ProgressReporter:
    """Forwards progress percentages to a callback, clamped to [0, 100] and never decreasing."""

    def __init__(self, callback: Optional[Callable[[float], None]] = None):
        self.callback = callback
        self.last = 0.0

    def report(self, percent: float):
        value = max(self.last, min(100.0, max(0.0, float(percent))))
        self.last = value
        if self.callback is not None:
            self.callback(value)

    def band(self, start: float, end: float) -> Callable[[float], None]:
        """A callback mapping a sub-step's own 0-100 progress into [start, end]."""
        def forward(percent: float):
            fraction = min(100.0, max(0.0, float(percent))) / 100
            self.report(start + fraction * (end - start))
        return forward


def _wrap(error_cls: type[AnalysisError], exc: Exception) -> AnalysisError:
    message = str(exc)
    if not message.startswith(ERROR_PREFIX):
        message = ERROR_PREFIX + message
    return error_cls(message)


def _decode(image):
    try:
        return decode_image(image)
    except Exception as e:
        raise _wrap(DecodeError, e) from e


def _recognize(adapter: RecognitionAdapter, buffer, on_progress) -> RecognitionResult:
    try:
        with adapter:
            return adapter.recognize(buffer, on_progress=on_progress)
    except Exception as e:
        raise _wrap(RecognitionError, e) from e


def _image_metrics(buffer) -> ImageQualityMetrics:
    try:
        return analyze_image_quality(buffer)
    except Exception as e:
        raise _wrap(AnalysisError, e) from e


def _metrics_dict(recognition: RecognitionResult, metrics: ImageQualityMetrics) -> dict:
    return {
        "ocrConfidence": recognition.confidence,
        "textDensity": metrics.text_density,
        "contrastScore": metrics.contrast_score,
        "lineConsistency": metrics.line_consistency,
    }


def analyze_handwriting(image, on_progress: Optional[Callable[[float], None]] = None,
                        adapter: Optional[RecognitionAdapter] = None,
                        engine: str = "tesseract", preprocess: bool = False) -> AnalysisResult:
    """
    Analyze one handwriting image and return its readability result.

    Args:
        image: Path, bytes, file object, PIL image, numpy array or PixelBuffer.
        on_progress: Called with non-decreasing percentages, ending at 100 on success.
        adapter: Recognition adapter to use; created from ``engine`` when omitted.
            It is acquired and released within this call.
        engine: OCR engine name used when no adapter is given.
        preprocess: Apply OpenCV cleanup to the OCR input (metrics always use raw pixels).

    Raises:
        DecodeError: The image could not be decoded.
        RecognitionError: The recognition engine failed.
        AnalysisError: Metric computation failed.
    """
    progress = ProgressReporter(on_progress)
    adapter = adapter or create_adapter(engine, preprocess=preprocess)

    buffer = _decode(image)
    progress.report(10)

    recognition = _recognize(adapter, buffer, progress.band(10, 70))

    metrics = _image_metrics(buffer)
    progress.report(75)

    score = calculate_readability_score(recognition, metrics)
    progress.report(90)

    findings = generate_findings(score, recognition, metrics)
    if metrics.degraded:
        findings.append(degraded_finding())

    result = AnalysisResult(readability_score=round_score(score), confidence=recognition.confidence,
                            extracted_text=recognition.text, word_count=recognition.word_count,
                            line_count=recognition.line_count,
                            metrics=_metrics_dict(recognition, metrics),
                            findings=tuple(findings), degraded=metrics.degraded)
    progress.report(100)
    logger.info(f"  Readability {result.readability_score:.2f} ({result.label.label}), "
                f"{result.word_count} words, {len(result.findings)} findings")
    return result


def analyze_handwriting_advanced(image, on_progress: Optional[Callable[[float], None]] = None,
                                 adapter: Optional[RecognitionAdapter] = None,
                                 engine: str = "tesseract",
                                 preprocess: bool = False) -> AdvancedAnalysisResult:
    """Like analyze_handwriting, with letter, spatial and dysgraphia indicators added."""
    progress = ProgressReporter(on_progress)
    adapter = adapter or create_adapter(engine, preprocess=preprocess)

    buffer = _decode(image)
    progress.report(5)

    recognition = _recognize(adapter, buffer, progress.band(5, 45))
    progress.report(50)

    metrics = _image_metrics(buffer)
    progress.report(60)

    letters = analyze_letter_characteristics(recognition)
    progress.report(70)

    spatial = analyze_spatial_characteristics(recognition)
    progress.report(80)

    indicators = calculate_dysgraphia_indicators(recognition, metrics, letters, spatial)
    progress.report(90)

    score = calculate_readability_score(recognition, metrics)
    findings = generate_advanced_findings(score, recognition, metrics, indicators)
    if metrics.degraded:
        findings.append(degraded_finding())

    extended = _metrics_dict(recognition, metrics)
    extended.update({
        "letterSizeVariation": letters.size_variation,
        "letterSlantConsistency": letters.slant_consistency,
        "wordSpacingConsistency": spatial.word_spacing_consistency,
        "baselineAlignment": spatial.baseline_alignment,
    })
    result = AdvancedAnalysisResult(readability_score=round_score(score),
                                    confidence=recognition.confidence,
                                    extracted_text=recognition.text,
                                    word_count=recognition.word_count,
                                    line_count=recognition.line_count,
                                    metrics=extended, findings=tuple(findings),
                                    degraded=metrics.degraded, letter_analysis=letters,
                                    spatial_analysis=spatial, dysgraphia_indicators=indicators)
    progress.report(100)
    logger.info(f"  Readability {result.readability_score:.2f}, "
                f"writing risk {indicators.writing_risk:.2f}")
    return result


def _source_name(image) -> str:
    if isinstance(image, (str, os.PathLike)):
        return os.fspath(image)
    return f"<{type(image).__name__}>"


def analyze_batch(images: list, max_workers: int = DEFAULT_BATCH_WORKERS,
                  adapter_factory: Optional[Callable[[], RecognitionAdapter]] = None,
                  engine: str = "tesseract", preprocess: bool = False,
                  advanced: bool = False) -> BatchReport:
    """
    Analyze several images concurrently. Each run gets its own adapter; a
    failed image is reported in its BatchItem without affecting the others.
    """
    factory = adapter_factory or (lambda: create_adapter(engine, preprocess=preprocess))
    analyze = analyze_handwriting_advanced if advanced else analyze_handwriting

    def run(image) -> BatchItem:
        source = _source_name(image)
        try:
            return BatchItem(source=source, result=analyze(image, adapter=factory()))
        except AnalysisError as e:
            logger.warning(f"  {source}: {e}")
            return BatchItem(source=source, error=str(e))

    logger.info(f"Analyzing {len(images)} images with {max_workers} workers")
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        items = list(executor.map(run, images))
    report = BatchReport(items=items)
    logger.info(f"  {report.succeeded} succeeded, {report.failed} failed")
    return report
