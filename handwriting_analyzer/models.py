"""
Data models used across the handwriting analysis pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import numpy as np


@dataclass(frozen=True)
class PixelBuffer:
    """A decoded image: RGBA samples, row-major, origin top-left."""
    width: int
    height: int
    data: np.ndarray

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Build a buffer from a grayscale, RGB or RGBA array.

        uint8 samples are taken as-is, uint16 samples are scaled down to
        8 bits, and float samples must lie in [0, 1].
        """
        arr = _to_uint8(np.asarray(array))
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr, np.full_like(arr, 255)], axis=-1)
        elif arr.ndim == 3 and arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)
        elif arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Unsupported pixel array shape: {arr.shape}")
        arr = np.array(arr, order="C")
        arr.setflags(write=False)
        return cls(width=arr.shape[1], height=arr.shape[0], data=arr)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def channel_sum(self) -> np.ndarray:
        """Per-pixel R + G + B (0..765) as uint16; alpha is ignored."""
        return np.sum(self.data[:, :, :3], axis=2, dtype=np.uint16)


def _to_uint8(arr: np.ndarray) -> np.ndarray:
    if arr.dtype == np.uint8:
        return arr
    if arr.dtype == np.bool_:
        return arr.astype(np.uint8) * 255
    if arr.dtype == np.uint16:
        return np.round(arr / 257).astype(np.uint8)
    if np.issubdtype(arr.dtype, np.floating):
        if arr.size and (np.nanmin(arr) < 0.0 or np.nanmax(arr) > 1.0):
            raise ValueError("Float pixel values must lie in [0, 1]")
        return np.round(np.nan_to_num(arr) * 255).astype(np.uint8)
    raise ValueError(f"Unsupported pixel dtype: {arr.dtype}")


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in pixel coordinates (x1/y1 exclusive)."""
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0


@dataclass(frozen=True)
class RecognizedWord:
    text: str
    confidence: float
    bbox: Optional[BoundingBox] = None


@dataclass(frozen=True)
class RecognizedLine:
    text: str
    confidence: float
    bbox: Optional[BoundingBox] = None


@dataclass(frozen=True)
class RecognitionResult:
    """Output of a recognition engine for one image.

    ``build`` derives ``confidence`` and ``word_count`` from the words with
    confidence > 0.
    """
    text: str = ""
    words: tuple[RecognizedWord, ...] = ()
    lines: tuple[RecognizedLine, ...] = ()
    confidence: float = 0.0
    word_count: int = 0

    @classmethod
    def build(cls, text: str, words=(), lines=()) -> "RecognitionResult":
        words = tuple(words)
        valid = [w.confidence for w in words if w.confidence > 0]
        confidence = min(1.0, sum(valid) / len(valid)) if valid else 0.0
        return cls(text=(text or "").strip(), words=words, lines=tuple(lines),
                   confidence=confidence, word_count=len(valid))

    @property
    def line_count(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class ImageQualityMetrics:
    """Normalized image quality signals; ``degraded`` marks neutral fallbacks."""
    contrast_score: float
    text_density: float
    line_consistency: float
    width: int = 0
    height: int = 0
    degraded: bool = False


class FindingType(str, Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    CONCERN = "concern"
    INFO = "info"


@dataclass(frozen=True)
class Finding:
    type: FindingType
    message: str

    def to_dict(self) -> dict:
        return {"type": self.type.value, "message": self.message}


@dataclass(frozen=True)
class ReadabilityLabel:
    label: str
    color: str


@dataclass(frozen=True)
class LetterAnalysis:
    size_variation: float
    slant_consistency: float
    formation_quality: float


@dataclass(frozen=True)
class SpatialAnalysis:
    word_spacing_consistency: float
    baseline_alignment: float


@dataclass(frozen=True)
class DysgraphiaIndicators:
    letter_formation: float
    line_alignment: float
    spacing: float
    consistency: float
    writing_risk: float
    motor_coordination_risk: float
    visual_processing_risk: float

    def to_dict(self) -> dict:
        return {
            "letterFormation": self.letter_formation,
            "lineAlignment": self.line_alignment,
            "spacing": self.spacing,
            "consistency": self.consistency,
            "writingRisk": self.writing_risk,
            "motorCoordinationRisk": self.motor_coordination_risk,
            "visualProcessingRisk": self.visual_processing_risk,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Consolidated result for one analyzed image."""
    readability_score: float
    confidence: float
    extracted_text: str
    word_count: int
    line_count: int
    metrics: dict
    findings: tuple[Finding, ...] = ()
    degraded: bool = False

    @property
    def label(self) -> ReadabilityLabel:
        from .scoring import readability_label
        return readability_label(self.readability_score)

    def to_dict(self) -> dict:
        return {
            "readabilityScore": self.readability_score,
            "confidence": self.confidence,
            "extractedText": self.extracted_text,
            "wordCount": self.word_count,
            "lineCount": self.line_count,
            "metrics": dict(self.metrics),
            "findings": [f.to_dict() for f in self.findings],
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class AdvancedAnalysisResult(AnalysisResult):
    """Analysis result extended with dysgraphia-oriented indicators."""
    letter_analysis: Optional[LetterAnalysis] = None
    spatial_analysis: Optional[SpatialAnalysis] = None
    dysgraphia_indicators: Optional[DysgraphiaIndicators] = None

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.dysgraphia_indicators is not None:
            data["dysgraphiaIndicators"] = self.dysgraphia_indicators.to_dict()
        return data


@dataclass
class BatchItem:
    """Outcome of one image in a batch run: either a result or an error."""
    source: str
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass
class BatchReport:
    items: list[BatchItem] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @property
    def failed(self) -> int:
        return len(self.items) - self.succeeded
