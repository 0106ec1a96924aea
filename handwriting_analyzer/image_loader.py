"""
Image Loader — Decodes uploaded image data into RGBA pixel buffers and
validates uploads before analysis.
"""

import io
import logging
import os
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, UploadValidationError
from .models import PixelBuffer

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = {"JPEG", "PNG"}
MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _read_bytes(source) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, os.PathLike)):
        try:
            with open(source, "rb") as f:
                return f.read()
        except OSError as e:
            raise DecodeError(f"Cannot read image file {source}: {e}") from e
    if hasattr(source, "read"):
        try:
            return source.read()
        except Exception as e:
            raise DecodeError(f"Cannot read image stream: {e}") from e
    raise DecodeError(f"Unsupported image source type: {type(source).__name__}")


def _image_to_array(img: Image.Image) -> np.ndarray:
    """
    Pixel array for an opened image. 16-bit and 32-bit integer modes are
    handed over at full depth so from_array can scale them; everything
    else goes through Pillow's RGBA conversion.
    """
    if img.mode.startswith("I;16"):
        return np.asarray(img).astype(np.uint16)
    if img.mode == "I":
        arr = np.asarray(img)
        if arr.size and arr.max() > 255:
            return np.clip(arr, 0, 65535).astype(np.uint16)
        return np.clip(arr, 0, 255).astype(np.uint8)
    if img.mode == "F":
        arr = np.asarray(img, dtype=np.float64)
        if arr.size and arr.max() <= 1.0:
            return np.clip(arr, 0.0, 1.0)
        return np.clip(arr, 0, 255).astype(np.uint8)
    return np.asarray(img.convert("RGBA"))


def decode_image(source) -> PixelBuffer:
    """
    Decode an image (path, bytes, file object, PIL image or numpy array)
    into an RGBA PixelBuffer. High bit-depth images are scaled to 8 bits.
    """
    if isinstance(source, PixelBuffer):
        return source
    if isinstance(source, np.ndarray):
        try:
            return PixelBuffer.from_array(source)
        except ValueError as e:
            raise DecodeError(str(e)) from e
    if isinstance(source, Image.Image):
        try:
            return PixelBuffer.from_array(_image_to_array(source))
        except Exception as e:
            raise DecodeError(f"Cannot convert image: {e}") from e

    data = _read_bytes(source)
    if not data:
        raise DecodeError("Image data is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            buffer = PixelBuffer.from_array(_image_to_array(img))
    except Image.DecompressionBombError as e:
        raise DecodeError(f"Image is too large to decode: {e}") from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e

    logger.debug(f"  Decoded image {buffer.width}x{buffer.height}")
    return buffer


def validate_upload(data: bytes, max_bytes: int = MAX_UPLOAD_BYTES) -> str:
    """
    Check an upload is a JPEG or PNG of at most ``max_bytes``.

    Returns the detected format name.
    """
    if len(data) > max_bytes:
        raise UploadValidationError(
            f"File is {len(data) / (1024 * 1024):.1f}MB; maximum is {max_bytes / (1024 * 1024):.0f}MB")
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise UploadValidationError("File is not a recognizable image") from e
    if fmt not in ALLOWED_FORMATS:
        raise UploadValidationError(f"Unsupported image format {fmt}; use JPEG or PNG")
    return fmt
