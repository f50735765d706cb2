"""Crop engine — selection geometry and raster cropping with Pillow.

The editor captures a selection on the *displayed* image, which is usually
scaled down by CSS.  Cropping happens on the *source* pixels, so every
selection goes through ``to_source_region`` first:

    source = displayed * (natural_size / displayed_size)   (per axis)

The region is clipped to the source bounds, cut out at source resolution
and re-encoded.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import httpx
from PIL import Image, UnidentifiedImageError

from newsletter.data_uri import decode_data_uri, is_data_uri, to_data_uri
from newsletter.errors import CropError, InputError
from newsletter.image_proxy import fetch_image

logger = logging.getLogger(__name__)

# None = free-form selection
ASPECT_PRESETS: dict[str, float | None] = {
    "16:9": 16 / 9,
    "4:3": 4 / 3,
    "1:1": 1.0,
    "free": None,
}
DEFAULT_ASPECT = "16:9"
DEFAULT_SELECTION_WIDTH_PERCENT = 90.0

OUTPUT_FORMAT = "JPEG"
OUTPUT_MIME_TYPE = "image/jpeg"
OUTPUT_QUALITY = 92


@dataclass(frozen=True)
class CropRegion:
    """Rectangle in either percent of the displayed image or absolute pixels."""

    x: float
    y: float
    width: float
    height: float

    def scaled(self, scale_x: float, scale_y: float) -> CropRegion:
        return CropRegion(
            x=self.x * scale_x,
            y=self.y * scale_y,
            width=self.width * scale_x,
            height=self.height * scale_y,
        )

    def box(self) -> tuple[int, int, int, int]:
        """Integer ``(left, top, right, bottom)`` box for Pillow."""
        left = round(self.x)
        top = round(self.y)
        return left, top, left + round(self.width), top + round(self.height)


# ---------------------------------------------------------------------------
# Selection geometry
# ---------------------------------------------------------------------------

def aspect_value(label: str) -> float | None:
    """Return the ratio for a preset label, raising ``InputError`` if unknown."""
    try:
        return ASPECT_PRESETS[label]
    except KeyError:
        raise InputError(
            f"Unknown aspect ratio {label!r}; expected one of {', '.join(ASPECT_PRESETS)}"
        ) from None


def centered_aspect_selection(media_width: float, media_height: float, aspect: float) -> CropRegion:
    """Default selection for *aspect*: 90% wide, centered, in percent.

    When a 90%-wide box of that ratio would be taller than the image, the
    box is shrunk to the full image height instead.
    """
    width_px = media_width * DEFAULT_SELECTION_WIDTH_PERCENT / 100
    height_px = width_px / aspect
    if height_px > media_height:
        height_px = media_height
        width_px = height_px * aspect

    width = width_px / media_width * 100
    height = height_px / media_height * 100
    return CropRegion(x=(100 - width) / 2, y=(100 - height) / 2, width=width, height=height)


def free_selection() -> CropRegion:
    """Default selection for free-form mode, in percent."""
    return CropRegion(x=25, y=25, width=50, height=50)


def default_selection(label: str, media_width: float, media_height: float) -> CropRegion:
    aspect = aspect_value(label)
    if aspect is None:
        return free_selection()
    return centered_aspect_selection(media_width, media_height, aspect)


def _check_size(width: float, height: float, what: str) -> None:
    if width <= 0 or height <= 0:
        raise InputError(f"{what} must be positive, got {width}x{height}")


def percent_to_pixels(selection: CropRegion, displayed_width: float, displayed_height: float) -> CropRegion:
    """Convert a percent selection into pixels of the displayed image."""
    _check_size(displayed_width, displayed_height, "Displayed size")
    return selection.scaled(displayed_width / 100, displayed_height / 100)


def to_source_region(
    region: CropRegion,
    natural_size: tuple[float, float],
    displayed_size: tuple[float, float],
) -> CropRegion:
    """Scale a displayed-pixel *region* to source-image pixels."""
    natural_width, natural_height = natural_size
    displayed_width, displayed_height = displayed_size
    _check_size(displayed_width, displayed_height, "Displayed size")
    return region.scaled(natural_width / displayed_width, natural_height / displayed_height)


# ---------------------------------------------------------------------------
# Raster operations
# ---------------------------------------------------------------------------

def _open_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise CropError("Could not load the source image") from exc
    return image


def clamp_box(box: tuple[int, int, int, int], size: tuple[int, int]) -> tuple[int, int, int, int]:
    """Intersect a ``(left, top, right, bottom)`` box with an image of *size*."""
    width, height = size
    left, top, right, bottom = box
    return max(left, 0), max(top, 0), min(right, width), min(bottom, height)


def _crop(image: Image.Image, region: CropRegion) -> bytes:
    # Output never exceeds the source, whatever the selection claims.
    left, top, right, bottom = clamp_box(region.box(), image.size)
    if right <= left or bottom <= top:
        raise CropError("Crop region is empty")

    cropped = image.crop((left, top, right, bottom))
    if cropped.mode not in ("RGB", "L"):
        cropped = cropped.convert("RGB")

    buffer = io.BytesIO()
    cropped.save(buffer, format=OUTPUT_FORMAT, quality=OUTPUT_QUALITY)
    logger.debug("Cropped %s → %dx%d", image.size, right - left, bottom - top)
    return buffer.getvalue()


def crop_image(data: bytes, region: CropRegion) -> bytes:
    """Crop encoded image *data* to *region* (source pixels) and re-encode as JPEG."""
    return _crop(_open_image(data), region)


async def load_image_reference(image_url: str, client: httpx.AsyncClient) -> bytes:
    """Return the bytes behind *image_url*.

    ``data:`` URIs are decoded in place; remote URLs go through the image
    proxy fetch.
    """
    if is_data_uri(image_url):
        try:
            data, _ = decode_data_uri(image_url)
        except ValueError as exc:
            raise CropError(f"Could not load the source image: {exc}") from exc
        return data
    proxied = await fetch_image(image_url, client)
    return proxied.data


async def crop_reference(
    image_url: str,
    selection: CropRegion,
    displayed_size: tuple[float, float],
    client: httpx.AsyncClient,
    unit: str = "px",
) -> str:
    """Crop the image behind *image_url* and return the result as a ``data:`` URI.

    *selection* is expressed on the displayed image, in pixels (``unit="px"``)
    or percent (``unit="%"``).
    """
    if unit == "%":
        selection = percent_to_pixels(selection, *displayed_size)
    elif unit != "px":
        raise InputError(f"Unknown selection unit {unit!r}; expected 'px' or '%'")

    image = _open_image(await load_image_reference(image_url, client))
    region = to_source_region(selection, image.size, displayed_size)
    logger.info("Cropping %s source region %s", image.size, region.box())
    return to_data_uri(_crop(image, region), OUTPUT_MIME_TYPE)


class CropSession:
    """Interactive crop state for one image in the editor.

    ``selection`` is the live selection in percent of the displayed image;
    ``completed`` is the finalized selection in displayed pixels, set by
    ``select`` and required by ``apply``.
    """

    def __init__(
        self,
        image_url: str,
        displayed_width: float,
        displayed_height: float,
        aspect: str = DEFAULT_ASPECT,
    ) -> None:
        _check_size(displayed_width, displayed_height, "Displayed size")
        self.image_url = image_url
        self.displayed_width = displayed_width
        self.displayed_height = displayed_height
        self.aspect = aspect
        self.selection = default_selection(aspect, displayed_width, displayed_height)
        self.completed: CropRegion | None = None

    @property
    def displayed_size(self) -> tuple[float, float]:
        return self.displayed_width, self.displayed_height

    def set_aspect(self, label: str) -> None:
        """Switch preset; the selection resets to that preset's centered default."""
        self.selection = default_selection(label, self.displayed_width, self.displayed_height)
        self.aspect = label
        self.completed = None

    def select(self, region: CropRegion) -> None:
        """Finalize a selection given in displayed pixels."""
        self.completed = region
        self.selection = region.scaled(100 / self.displayed_width, 100 / self.displayed_height)

    def accept_current(self) -> None:
        """Finalize the current (percent) selection as is."""
        self.completed = percent_to_pixels(self.selection, *self.displayed_size)

    def source_region(self, natural_size: tuple[float, float]) -> CropRegion:
        if self.completed is None:
            raise CropError("No crop region selected")
        return to_source_region(self.completed, natural_size, self.displayed_size)

    async def apply(self, client: httpx.AsyncClient) -> str:
        """Crop the session image to the finalized selection; returns a ``data:`` URI."""
        if self.completed is None:
            raise CropError("No crop region selected")
        return await crop_reference(self.image_url, self.completed, self.displayed_size, client)
