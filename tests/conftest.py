"""Shared fixtures: synthetic pixel buffers and a stub recognition adapter."""

import io

import numpy as np
import pytest
from PIL import Image

from handwriting_analyzer.models import (BoundingBox, PixelBuffer, RecognitionResult,
                                         RecognizedLine, RecognizedWord)
from handwriting_analyzer.ocr_engine import RecognitionAdapter


def lined_page(width=100, height=80, line_rows=(10, 30, 50, 70), thickness=3, ink=0):
    """White page with full-width horizontal ink bands starting at ``line_rows``."""
    gray = np.full((height, width), 255, dtype=np.uint8)
    for row in line_rows:
        gray[row:row + thickness, :] = ink
    return PixelBuffer.from_array(gray)


def make_recognition(confidences=(), line_count=0, text=None):
    words = [RecognizedWord(text=f"word{i}", confidence=c,
                            bbox=BoundingBox(x0=i * 50, y0=0, x1=i * 50 + 40, y1=20))
             for i, c in enumerate(confidences)]
    lines = [RecognizedLine(text=f"line {i}", confidence=0.9,
                            bbox=BoundingBox(x0=0, y0=i * 30, x1=500, y1=i * 30 + 20))
             for i in range(line_count)]
    if text is None:
        text = " ".join(w.text for w in words)
    return RecognitionResult.build(text=text, words=words, lines=lines)


class StubAdapter(RecognitionAdapter):
    """Returns a fixed recognition result and records its lifecycle."""

    name = "stub"

    def __init__(self, result=None, error=None, progress_steps=(50, 100)):
        super().__init__()
        self.result = result if result is not None else RecognitionResult()
        self.error = error
        self.progress_steps = progress_steps
        self.acquire_count = 0
        self.release_count = 0
        self.seen_buffer = None

    def acquire(self):
        self.acquire_count += 1
        super().acquire()

    def release(self):
        self.release_count += 1
        super().release()

    def recognize(self, buffer, on_progress=None):
        self.seen_buffer = buffer
        for step in self.progress_steps:
            if on_progress:
                on_progress(step)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def clean_page():
    """Four evenly spaced black lines on white at 15% ink."""
    return lined_page()


@pytest.fixture
def fluent_recognition():
    """20 words at 0.9 confidence across 4 lines."""
    return make_recognition([0.9] * 20, line_count=4)


@pytest.fixture
def png_bytes():
    def _make(size=(40, 30), color=(255, 255, 255), fmt="PNG"):
        buf = io.BytesIO()
        Image.new("RGB", size, color).save(buf, format=fmt)
        return buf.getvalue()
    return _make
