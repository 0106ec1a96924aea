"""
OCR Engine — Recognition adapters that turn a pixel buffer into recognized
text, per-word confidences and line boxes using Tesseract or EasyOCR.

Adapters are scoped resources: acquire before recognizing, release when the
analysis run ends. Use them as context managers.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional
import cv2
import numpy as np

from .errors import RecognitionError
from .models import BoundingBox, PixelBuffer, RecognitionResult, RecognizedLine, RecognizedWord

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

TESSERACT_WORD_LEVEL = 5
TESSERACT_CONFIG = "--psm 6"


def _preprocess_for_ocr(image: np.ndarray) -> np.ndarray:
    if len(image.shape) == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY if image.shape[2] == 4 else cv2.COLOR_RGB2GRAY)
    else:
        gray = image.copy()
    clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
    enhanced = clahe.apply(gray)
    denoised = cv2.fastNlMeansDenoising(enhanced, h=10)
    kernel = np.array([[-1, -1, -1], [-1, 9, -1], [-1, -1, -1]])
    sharpened = cv2.filter2D(denoised, -1, kernel)
    return sharpened


def _union_box(boxes: list[BoundingBox]) -> Optional[BoundingBox]:
    if not boxes:
        return None
    return BoundingBox(x0=min(b.x0 for b in boxes), y0=min(b.y0 for b in boxes),
                       x1=max(b.x1 for b in boxes), y1=max(b.y1 for b in boxes))


def _mean_confidence(words: list[RecognizedWord]) -> float:
    return float(np.mean([w.confidence for w in words])) if words else 0.0


class RecognitionAdapter(ABC):
    """Base class for text-recognition engines."""

    name = "base"

    def __init__(self, preprocess: bool = False):
        self.preprocess = preprocess
        self._acquired = False

    def acquire(self):
        """Load or connect to the engine. Raises RecognitionError if unavailable."""
        self._acquired = True

    def release(self):
        self._acquired = False

    def __enter__(self) -> "RecognitionAdapter":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def _prepare(self, buffer: PixelBuffer) -> np.ndarray:
        return _preprocess_for_ocr(buffer.data) if self.preprocess else np.asarray(buffer.data)

    @abstractmethod
    def recognize(self, buffer: PixelBuffer,
                  on_progress: Optional[ProgressCallback] = None) -> RecognitionResult:
        """Recognize text in a buffer; zero detections yield an empty result."""
        ...


def parse_tesseract_data(data: dict) -> RecognitionResult:
    """Build a RecognitionResult from pytesseract ``image_to_data`` dict output."""
    lines_data: dict[tuple, list[RecognizedWord]] = {}
    words = []
    n_items = len(data["text"])
    for i in range(n_items):
        if "level" in data and int(data["level"][i]) != TESSERACT_WORD_LEVEL:
            continue
        text = str(data["text"][i]).strip()
        if not text:
            continue
        conf = float(data["conf"][i])
        left, top = int(data["left"][i]), int(data["top"][i])
        bbox = BoundingBox(x0=left, y0=top, x1=left + int(data["width"][i]), y1=top + int(data["height"][i]))
        word = RecognizedWord(text=text, confidence=max(0.0, conf) / 100, bbox=bbox)
        words.append(word)
        key = (data["block_num"][i], data.get("par_num", [0] * n_items)[i], data["line_num"][i])
        lines_data.setdefault(key, []).append(word)

    lines = []
    for key in sorted(lines_data.keys()):
        line_words = lines_data[key]
        lines.append(RecognizedLine(text=" ".join(w.text for w in line_words),
                                    confidence=_mean_confidence(line_words),
                                    bbox=_union_box([w.bbox for w in line_words])))
    text = "\n".join(line.text for line in lines)
    return RecognitionResult.build(text=text, words=words, lines=lines)


class TesseractAdapter(RecognitionAdapter):
    name = "tesseract"

    def __init__(self, lang: str = "eng", preprocess: bool = False, config: str = TESSERACT_CONFIG):
        super().__init__(preprocess=preprocess)
        self.lang = lang
        self.config = config
        self._pytesseract = None

    def acquire(self):
        try:
            import pytesseract
        except ImportError as e:
            raise RecognitionError("pytesseract not installed. Run: pip install pytesseract") from e
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionError(f"Tesseract engine unavailable: {e}") from e
        logger.debug(f"  Tesseract {version} acquired (lang={self.lang})")
        self._pytesseract = pytesseract
        super().acquire()

    def release(self):
        self._pytesseract = None
        super().release()

    def recognize(self, buffer, on_progress=None):
        if self._pytesseract is None:
            raise RecognitionError("Tesseract adapter used before acquire()")
        if on_progress:
            on_progress(0)
        image = self._prepare(buffer)
        try:
            data = self._pytesseract.image_to_data(image, lang=self.lang, config=self.config,
                                                   output_type=self._pytesseract.Output.DICT)
        except Exception as e:
            raise RecognitionError(f"Tesseract OCR failed: {e}") from e
        result = parse_tesseract_data(data)
        if on_progress:
            on_progress(100)
        logger.debug(f"  Tesseract recognized {result.word_count} words on {result.line_count} lines")
        return result


def group_detections_into_lines(words: list[RecognizedWord]) -> list[RecognizedLine]:
    """Group word detections whose vertical centers fall within a running line span."""
    groups: list[list[RecognizedWord]] = []
    for word in sorted(words, key=lambda w: (w.bbox.y0, w.bbox.x0)):
        center = (word.bbox.y0 + word.bbox.y1) / 2
        if groups:
            span = _union_box([w.bbox for w in groups[-1]])
            if span.y0 <= center <= span.y1:
                groups[-1].append(word)
                continue
        groups.append([word])

    lines = []
    for group in groups:
        group.sort(key=lambda w: w.bbox.x0)
        lines.append(RecognizedLine(text=" ".join(w.text for w in group),
                                    confidence=_mean_confidence(group),
                                    bbox=_union_box([w.bbox for w in group])))
    return lines


def parse_easyocr_results(results: list) -> RecognitionResult:
    words = []
    for (bbox, text, conf) in results:
        if not str(text).strip():
            continue
        points = np.array(bbox)
        box = BoundingBox(x0=int(np.min(points[:, 0])), y0=int(np.min(points[:, 1])),
                          x1=int(np.max(points[:, 0])), y1=int(np.max(points[:, 1])))
        words.append(RecognizedWord(text=str(text).strip(), confidence=float(conf), bbox=box))
    lines = group_detections_into_lines(words)
    return RecognitionResult.build(text="\n".join(l.text for l in lines), words=words, lines=lines)


class EasyOCRAdapter(RecognitionAdapter):
    name = "easyocr"

    def __init__(self, lang: str = "en", preprocess: bool = False, gpu: bool = False):
        super().__init__(preprocess=preprocess)
        self.lang = lang
        self.gpu = gpu
        self._reader = None

    def acquire(self):
        try:
            import easyocr
        except ImportError as e:
            raise RecognitionError("easyocr not installed. Run: pip install easyocr") from e
        try:
            self._reader = easyocr.Reader([self.lang], gpu=self.gpu, verbose=False)
        except Exception as e:
            raise RecognitionError(f"EasyOCR reader could not be created: {e}") from e
        super().acquire()

    def release(self):
        self._reader = None
        super().release()

    def recognize(self, buffer, on_progress=None):
        if self._reader is None:
            raise RecognitionError("EasyOCR adapter used before acquire()")
        if on_progress:
            on_progress(0)
        image = self._prepare(buffer)
        if image.ndim == 3 and image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)
        try:
            results = self._reader.readtext(image)
        except Exception as e:
            raise RecognitionError(f"EasyOCR failed: {e}") from e
        result = parse_easyocr_results(results or [])
        if on_progress:
            on_progress(100)
        return result


ENGINES = {
    TesseractAdapter.name: TesseractAdapter,
    EasyOCRAdapter.name: EasyOCRAdapter,
}


def create_adapter(engine: str = "tesseract", **kwargs) -> RecognitionAdapter:
    try:
        adapter_cls = ENGINES[engine]
    except KeyError:
        raise ValueError(f"Unknown OCR engine: {engine} (choose from {', '.join(ENGINES)})") from None
    return adapter_cls(**kwargs)
