"""
Reading and writing images through Pillow.

A stream is either a file on disk or one of the standard streams ("-").
"-.ext" names a standard stream and forces its encoding to ext.
"""

import contextlib
import enum
import io
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ConfigError, DecodeError, EncodeError, SniffError, StreamOpenError

logger = logging.getLogger(__name__)

STDIO = "-"


class Encoding(enum.Enum):
    # values are Pillow format names
    JPEG = "JPEG"
    PNG = "PNG"
    TGA = "TGA"
    BMP = "BMP"


EXTENSIONS = {
    ".jpg": Encoding.JPEG,
    ".jpeg": Encoding.JPEG,
    ".png": Encoding.PNG,
    ".tga": Encoding.TGA,
    ".bmp": Encoding.BMP,
}

# BMP only needs its first two bytes to match
MAGIC = [
    (b"\x42\x4d", Encoding.BMP),
    (b"\xff\xd8\xff\xe0", Encoding.JPEG),
    (b"\x89\x50\x4e\x47", Encoding.PNG),
]
SNIFF_SIZE = 4

CHANNEL_MODES = {1: "L", 2: "LA", 3: "RGB", 4: "RGBA"}

# (encoding, mode) pairs the encoder cannot store as they are
SAVE_MODES = {
    (Encoding.JPEG, "LA"): "L",
    (Encoding.JPEG, "RGBA"): "RGB",
    (Encoding.BMP, "LA"): "L",
}

ENCODER_PARAMS = {
    Encoding.JPEG: {"quality": 100, "subsampling": 0},
    Encoding.PNG: {},
    Encoding.TGA: {},
    Encoding.BMP: {},
}


@dataclass
class ImageStream:
    name: str
    handle: BinaryIO
    encoding: Encoding

    @property
    def display_name(self):
        return "stdin" if is_stdio(self.name) else self.name


def is_stdio(name):
    return name == STDIO or name.startswith(STDIO + ".")


def encoding_from_name(name) -> Optional[Encoding]:
    """Encoding implied by the extension of name, None if it has none."""
    suffix = Path(name).suffix
    if not suffix:
        return None
    try:
        return EXTENSIONS[suffix.lower()]
    except KeyError:
        raise ConfigError(f"Unknown file extension {suffix}") from None


def sniff(head, name) -> Encoding:
    """Classify a stream by its first bytes."""
    head = head[:SNIFF_SIZE]
    if len(head) < SNIFF_SIZE:
        raise SniffError(f"could not read file {name}")
    for magic, encoding in MAGIC:
        if head.startswith(magic):
            return encoding
    raise SniffError("Could not determine input file type from magic, "
                     "please use the -.extension syntax to specify")


def _open(name, mode):
    try:
        return open(name, mode)
    except OSError as exc:
        purpose = "reading" if "r" in mode else "writing"
        raise StreamOpenError(f"Could not open file {name} for {purpose}: {exc.strerror}") from exc


def _read_all(handle, name):
    # read() on a buffered reader blocks until EOF, however the pipe delivers it
    try:
        return handle.read()
    except OSError as exc:
        raise StreamOpenError(f"could not read file {name}: {exc.strerror}") from exc


@contextlib.contextmanager
def open_input(name):
    """Open name for reading; the encoding is sniffed when name has no extension."""
    encoding = encoding_from_name(name)
    if is_stdio(name):
        data = _read_all(sys.stdin.buffer, name)
    else:
        with _open(name, "rb") as handle:
            data = _read_all(handle, name)
    if encoding is None:
        encoding = sniff(data, name)
    logger.debug("input %s: %s (%d bytes)", name, encoding.value, len(data))
    with io.BytesIO(data) as handle:
        yield ImageStream(name, handle, encoding)


@contextlib.contextmanager
def open_output(name, fallback):
    """Open name for writing; without an extension the fallback encoding is used."""
    encoding = encoding_from_name(name) or fallback
    if is_stdio(name):
        handle, owned = sys.stdout.buffer, False
    else:
        handle, owned = _open(name, "wb"), True
    try:
        logger.debug("output %s: %s", name, encoding.value)
        yield ImageStream(name, handle, encoding)
    except BaseException:
        if owned:
            # the error already raised is the one to report
            with contextlib.suppress(OSError):
                handle.close()
        raise
    if owned:
        try:
            handle.close()
        except OSError as exc:
            raise EncodeError(f"Could not write image to {name}") from exc


# -----------------------
# Decoding
# -----------------------
def _natural_mode(img):
    if img.mode in CHANNEL_MODES.values():
        return img.mode
    if img.mode in ("1", "L", "I", "F") or img.mode.startswith("I;16"):
        return "L"
    if "A" in img.mode or "a" in img.mode or "transparency" in img.info:
        return "RGBA"
    return "RGB"


def _to_8bit(img, channels):
    mode = CHANNEL_MODES[channels] if channels else _natural_mode(img)
    if img.mode == "I" or img.mode.startswith("I;16"):
        # 16-bit samples keep their high byte
        wide = np.asarray(img).astype(np.int64)
        img = Image.fromarray(np.clip(wide >> 8, 0, 255).astype(np.uint8))
    else:
        img = img.convert(_natural_mode(img))
    if img.mode != mode:
        img = img.convert(mode)
    return img


def _open_image(data, encoding):
    # the stream's own encoding is tried first, TGA has no magic to detect
    try:
        return Image.open(io.BytesIO(data), formats=[encoding.value])
    except UnidentifiedImageError:
        return Image.open(io.BytesIO(data))


def read_image(stream, channels=0):
    """
    stream   : ImageStream opened with open_input
    channels : 1..4 to force the channel count, 0 to keep the image's own

    returns uint8 array (H x W x C)
    """
    data = stream.handle.read()
    try:
        with _open_image(data, stream.encoding) as img:
            img.load()
            converted = _to_8bit(img, channels)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DecodeError(f"Could not load image {stream.display_name}: {exc}") from exc

    pixels = np.asarray(converted, dtype=np.uint8)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    return pixels


# -----------------------
# Encoding
# -----------------------
def encode_image(pixels, encoding):
    """Encode a uint8 (H x W x C) array, returns the file contents as bytes."""
    if encoding not in ENCODER_PARAMS:
        raise AssertionError(f"Impossible state: invalid file type {encoding!r} when writing")

    height, width, channels = pixels.shape
    mode = CHANNEL_MODES[channels]
    img = Image.frombytes(mode, (width, height), np.ascontiguousarray(pixels).tobytes())
    save_mode = SAVE_MODES.get((encoding, mode), mode)
    if save_mode != mode:
        img = img.convert(save_mode)

    buffer = io.BytesIO()
    img.save(buffer, format=encoding.value, **ENCODER_PARAMS[encoding])
    return buffer.getvalue()


def write_image(stream, pixels):
    """Encode fully in memory first so a failed encode leaves no partial file."""
    try:
        data = encode_image(pixels, stream.encoding)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"Could not write image to {stream.name}") from exc
    try:
        stream.handle.write(data)
        stream.handle.flush()
    except OSError as exc:
        raise EncodeError(f"Could not write image to {stream.name}: {exc.strerror}") from exc
