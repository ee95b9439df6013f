"""
Image transcoding for embedded item images.

Raw image bytes (or an existing data URL) go in; a data URL bounded to
`max_width` comes out. Images with real transparency stay lossless PNG;
everything else is flattened onto an opaque background and stored as
JPEG at the configured quality.
"""

import asyncio
import base64
import binascii
from dataclasses import dataclass
import io
import logging
import re

from PIL import Image, ImageOps, UnidentifiedImageError

from atelier_catalog.utils.errors import ImageCodecError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WIDTH = 800
DEFAULT_QUALITY = 0.85
WHITE = (255, 255, 255)

# Source formats able to carry an alpha channel
TRANSPARENCY_FORMATS = {"PNG", "WEBP", "GIF"}
TRANSPARENCY_MIME_TYPES = {"image/png", "image/webp", "image/gif"}
ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}

_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]*)*?);base64,(?P<data>.*)$",
    re.DOTALL,
)


# -------------------- Data URL Helpers --------------------


def parse_data_url(data_url: str) -> tuple[str | None, bytes]:
    """
    Split a base64 data URL into its MIME type and raw bytes.

    Raises:
        ImageCodecError: If the string is not a base64 data URL
    """
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ImageCodecError("Not a base64 data URL")
    try:
        payload = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ImageCodecError(f"Invalid base64 payload: {e}") from e
    return match.group("mime"), payload


def to_data_url(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


# -------------------- Codec --------------------


@dataclass
class EncodedImage:
    """Result of one transcoding."""

    data_url: str
    mime_type: str
    width: int
    height: int
    source_width: int
    source_height: int

    @property
    def lossless(self) -> bool:
        return self.mime_type == "image/png"


class ImageCodec:
    """
    Bounded re-encoder for embedded images.

    Args:
        max_width: Maximum output width in pixels
        quality: Lossy quality factor in (0, 1]
        background: RGB colour transparent images are flattened onto when
            they end up on the lossy path
    """

    def __init__(
        self,
        max_width: int = DEFAULT_MAX_WIDTH,
        quality: float = DEFAULT_QUALITY,
        background: tuple[int, int, int] = WHITE,
    ):
        if max_width <= 0:
            raise ValueError(f"max_width must be positive, got {max_width}")
        if not 0 < quality <= 1:
            raise ValueError(f"quality must be in (0, 1], got {quality}")
        self.max_width = max_width
        self.quality = quality
        self.background = background

    def target_size(self, width: int, height: int) -> tuple[int, int]:
        """Output dimensions: width capped at max_width, aspect ratio kept."""
        if width <= self.max_width:
            return width, height
        scale = self.max_width / width
        # Half-up rounding, not Python's banker's rounding
        return self.max_width, max(1, int(height * scale + 0.5))

    @staticmethod
    def has_transparency(image: Image.Image) -> bool:
        """Full scan: True if any pixel is less than fully opaque."""
        if "A" not in image.getbands():
            return False
        minimum, _ = image.getchannel("A").getextrema()
        return minimum < 255

    @staticmethod
    def _declares_alpha(image: Image.Image, content_type: str | None) -> bool:
        capable = (image.format or "").upper() in TRANSPARENCY_FORMATS or (
            content_type or ""
        ).lower() in TRANSPARENCY_MIME_TYPES
        return capable and (image.mode in ALPHA_MODES or "transparency" in image.info)

    def _open(self, data: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise ImageCodecError(f"Cannot decode image: {e}") from e
        return image

    def encode_bytes(self, data: bytes, content_type: str | None = None) -> EncodedImage:
        """
        Transcode raw image bytes.

        Args:
            data: Encoded source image (PNG, JPEG, WebP, GIF, ...)
            content_type: MIME type declared by the source, if known

        Returns:
            EncodedImage with the data URL and output dimensions

        Raises:
            ImageCodecError: If the image cannot be decoded or encoded
        """
        if not data:
            raise ImageCodecError("Empty image data")

        source = self._open(data)
        declares_alpha = self._declares_alpha(source, content_type)
        source_format = source.format

        try:
            image = ImageOps.exif_transpose(source)
            image = image.convert("RGBA" if declares_alpha else "RGB")
            source_width, source_height = image.size
            width, height = self.target_size(source_width, source_height)
            if (width, height) != image.size:
                image = image.resize((width, height), Image.Resampling.LANCZOS)

            buffer = io.BytesIO()
            if declares_alpha and self.has_transparency(image):
                image.save(buffer, format="PNG", optimize=True)
                mime_type = "image/png"
            else:
                if image.mode == "RGBA":
                    flattened = Image.new("RGB", image.size, self.background)
                    flattened.paste(image, mask=image.getchannel("A"))
                    image = flattened
                image.save(
                    buffer,
                    format="JPEG",
                    quality=round(self.quality * 100),
                    optimize=True,
                )
                mime_type = "image/jpeg"
        except (OSError, ValueError) as e:
            raise ImageCodecError(f"Cannot encode image: {e}") from e

        logger.debug(
            f"Encoded {source_format or 'image'} {source_width}x{source_height} -> "
            f"{mime_type} {width}x{height} ({buffer.tell()} bytes)"
        )
        return EncodedImage(
            data_url=to_data_url(mime_type, buffer.getvalue()),
            mime_type=mime_type,
            width=width,
            height=height,
            source_width=source_width,
            source_height=source_height,
        )

    def encode_data_url(self, data_url: str) -> EncodedImage:
        """Re-encode an already embedded image."""
        mime_type, data = parse_data_url(data_url)
        return self.encode_bytes(data, content_type=mime_type)

    async def compress_bytes(self, data: bytes, content_type: str | None = None) -> str:
        """Async `encode_bytes`, returning only the data URL."""
        encoded = await asyncio.to_thread(self.encode_bytes, data, content_type)
        return encoded.data_url

    async def compress_data_url(self, data_url: str) -> str:
        """Async `encode_data_url`, returning only the data URL."""
        encoded = await asyncio.to_thread(self.encode_data_url, data_url)
        return encoded.data_url
