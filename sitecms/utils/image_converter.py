"""
Shrink admin uploads to WebP before they are sent to Cloudinary.
"""
import io
import logging
from typing import Optional, Tuple
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

WEBP_QUALITY = 85
MAX_DIMENSION = 2560  # gallery lightbox never renders larger


def to_webp(
    image_bytes: bytes,
    quality: int = WEBP_QUALITY,
    max_dimension: Optional[int] = MAX_DIMENSION,
) -> Tuple[bytes, bool]:
    """
    Re-encode an image as WebP, downscaling anything wider or taller than
    `max_dimension`.

    Returns (bytes, converted). The original bytes come back unchanged when
    the input is already WebP, cannot be decoded, or would grow.
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        if image.format == "WEBP":
            return image_bytes, False

        # Phone photos carry their rotation in EXIF only
        image = ImageOps.exif_transpose(image)
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA" if "A" in image.getbands() or image.mode == "P" else "RGB")

        if max_dimension and max(image.size) > max_dimension:
            image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        image.save(buffer, format="WEBP", quality=quality, method=6)
        converted = buffer.getvalue()
    except UnidentifiedImageError as e:
        logger.warning(f"Cannot identify image format: {str(e)}")
        return image_bytes, False
    except OSError as e:
        logger.error(f"Error converting image to WebP: {str(e)}", exc_info=True)
        return image_bytes, False

    if len(converted) >= len(image_bytes):
        logger.debug("WebP conversion did not reduce size, keeping original")
        return image_bytes, False

    logger.info(f"Converted image to WebP: {len(image_bytes):,} bytes -> {len(converted):,} bytes")
    return converted, True
