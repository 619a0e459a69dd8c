from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from typing import Callable

from PIL import Image, ImageOps, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .errors import DecodeError, InvalidTypeError, MissingFileError, TooLargeError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class ImageHandle:
    """An uploaded image: the encoded bytes plus its decoded pixel size."""

    data: bytes
    content_type: str
    width: int
    height: int
    filename: str = ""

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def open(self) -> Image.Image:
        """Decode into a fresh Pillow image, EXIF orientation applied."""
        return _decode(self.data)

    def data_uri(self) -> str:
        return to_data_uri(self.data, self.content_type)


def to_data_uri(data: bytes, content_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def _decode(data: bytes) -> Image.Image:
    try:
        im = Image.open(io.BytesIO(data))
        im.load()
        return ImageOps.exif_transpose(im)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError("The image could not be decoded (corrupt or unsupported format).") from exc


def check_content_type(content_type: str | None) -> None:
    if not (content_type or "").startswith("image/"):
        raise InvalidTypeError(f"Only image files are accepted (got {content_type or 'unknown type'}).")


def size_limit_error(max_bytes: int = MAX_UPLOAD_BYTES) -> TooLargeError:
    limit_mb = max_bytes / (1024 * 1024)
    return TooLargeError(f"The image is larger than the {limit_mb:g} MB limit.")


def check_size(size: int, max_bytes: int = MAX_UPLOAD_BYTES) -> None:
    if size > max_bytes:
        raise size_limit_error(max_bytes)


def decode_image(data: bytes, content_type: str, filename: str = "") -> ImageHandle:
    im = _decode(data)
    width, height = im.size
    im.close()
    return ImageHandle(data=data, content_type=content_type, width=width, height=height, filename=filename)


def read_upload(file: FileStorage | None, *, max_bytes: int = MAX_UPLOAD_BYTES) -> ImageHandle:
    if file is None or not file.filename:
        raise MissingFileError()

    content_type = file.mimetype or ""
    check_content_type(content_type)

    # read one byte past the limit so oversized streams are never fully buffered
    data = file.stream.read(max_bytes + 1)
    check_size(len(data), max_bytes)

    return decode_image(data, content_type, secure_filename(file.filename))


def accept_upload(
    file: FileStorage | None,
    set_image: Callable[[ImageHandle], None],
    *,
    clear_results: Callable[[], None] | None = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> ImageHandle:
    """Validate and decode an upload, then hand it to ``set_image``.

    ``clear_results`` runs first so results computed from the previous image
    never outlive it. Nothing is called when validation or decoding fails.
    """
    handle = read_upload(file, max_bytes=max_bytes)
    if clear_results is not None:
        clear_results()
    set_image(handle)
    logger.info("accepted upload %s (%s, %dx%d)", handle.filename or "-", handle.content_type, handle.width, handle.height)
    return handle
