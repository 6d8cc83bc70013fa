"""Loading scanned exam pages for vision model input."""

from __future__ import annotations

import base64
import io
from pathlib import Path

from PIL import Image, ImageOps

MAX_PROCESSABLE_PIXELS = 40_000_000


class PageImageLoader:
    """Load a scanned page as an upright, size-capped RGB image.

    Phone photos of exam papers often carry an EXIF rotation; it is applied
    before resizing so the model sees the page the right way up.
    """

    def __init__(self, max_dimension: int = 2048):
        self.max_dimension = max_dimension

    def load(self, image_path: Path | str) -> Image.Image:
        """Load a page image.

        Raises:
            FileNotFoundError: If the image file doesn't exist
            ValueError: If the image is too large to process
        """
        image_path = Path(image_path)
        if not image_path.exists():
            raise FileNotFoundError(f"Image not found: {image_path}")

        with Image.open(image_path) as opened:
            if opened.width * opened.height > MAX_PROCESSABLE_PIXELS:
                raise ValueError(
                    f"Image too large: {opened.width}x{opened.height} "
                    f"(max {MAX_PROCESSABLE_PIXELS / 1e6:.0f}M pixels)"
                )
            img = ImageOps.exif_transpose(opened)
            img.load()

        if img.width > self.max_dimension or img.height > self.max_dimension:
            img.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)

        return to_rgb(img)

    def load_as_base64(
        self,
        image_path: Path | str,
        output_format: str = "JPEG",
        quality: int = 95,
    ) -> str:
        """Load a page and return it base64-encoded."""
        img = self.load(image_path)

        buffer = io.BytesIO()
        if output_format.upper() == "JPEG":
            img.save(buffer, format="JPEG", quality=quality, optimize=True)
        else:
            img.save(buffer, format=output_format)

        return base64.b64encode(buffer.getvalue()).decode()


def to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white and convert to RGB."""
    if img.mode == "RGB":
        return img
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")
