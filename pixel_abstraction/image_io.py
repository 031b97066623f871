from __future__ import annotations

import io
from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image, ImageOps

from .colour_convert import lab_to_rgb, rgb_to_lab_threaded
from .constants import SATURATION_BOOST
from .core_types import Dimension, Lab, LabColor, LabGrid, U8Image

"""
Image source and sink.

Source: LabImage, a read-only (H, W, 3) Lab bitmap decoded with Pillow (EXIF
orientation and embedded ICC profiles honoured).
Sink: nearest-neighbour block upsampling, HSV saturation boost and PNG output.
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]


# Source


class LabImage:
    """Read-only Lab bitmap indexed by (row, column)."""

    def __init__(self, lab: np.ndarray) -> None:
        arr = np.asarray(lab, dtype=np.float64)
        if arr.ndim != 3 or arr.shape[-1] != 3:
            raise TypeError(f"expected (H,W,3) Lab array, got shape {arr.shape}")
        if arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ValueError("empty image")
        arr = np.ascontiguousarray(arr).copy()
        arr.setflags(write=False)
        self.lab: Lab = arr

    @property
    def height(self) -> int:
        return int(self.lab.shape[0])

    @property
    def width(self) -> int:
        return int(self.lab.shape[1])

    @property
    def size(self) -> Dimension:
        return Dimension(self.height, self.width)

    def colour_at(self, row: int, column: int) -> LabColor:
        return LabColor.from_array(self.lab[row, column])

    def mean_colour(self) -> LabColor:
        return LabColor.from_array(self.lab.reshape(-1, 3).mean(axis=0))

    @classmethod
    def from_rgb(cls, rgb: np.ndarray, workers: int = 1) -> "LabImage":
        return cls(rgb_to_lab_threaded(np.asarray(rgb)[..., :3], workers))

    @classmethod
    def from_path(cls, path: Path, workers: int = 1) -> "LabImage":
        return cls.from_rgb(load_image_rgb(path), workers)


def _convert_to_srgb(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes and ImageCms is not None:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im.convert("RGB"),
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGB",
            )
            if im2 is None:
                return im.convert("RGB")
            return im2
        except (ImageCms.PyCMSError, OSError):
            return im.convert("RGB")

    return im.convert("RGB")


def load_image_rgb(path: Path) -> U8Image:
    """Decode any Pillow-readable image to sRGB uint8 [H,W,3]."""
    with Image.open(path) as im0:
        im = _convert_to_srgb(im0)
        return np.array(im, dtype=np.uint8)


# Sink


def upsample_blocks(raster: np.ndarray, ratio: int) -> np.ndarray:
    """Nearest-neighbour block replication by an integer ratio on both axes."""
    ratio = max(1, int(ratio))
    if ratio == 1:
        return raster
    return np.repeat(np.repeat(raster, ratio, axis=0), ratio, axis=1)


def upsample_ratio(input_size: Dimension, output_size: Dimension) -> int:
    return max(1, input_size.width // output_size.width)


def saturate_rgb(rgb: U8Image, boost: int = SATURATION_BOOST) -> U8Image:
    """Add `boost` to the 8-bit HSV saturation channel, clipped at 255."""
    rgb_u8 = np.ascontiguousarray(rgb, dtype=np.uint8)
    hsv = np.array(Image.fromarray(rgb_u8).convert("HSV"), dtype=np.uint8)
    sat = hsv[..., 1].astype(np.int32) + int(boost)
    hsv[..., 1] = np.clip(sat, 0, 255).astype(np.uint8)
    height, width = hsv.shape[:2]
    boosted = Image.frombytes("HSV", (width, height), np.ascontiguousarray(hsv).tobytes())
    return np.array(boosted.convert("RGB"), dtype=np.uint8)


def render_rgb(raster: LabGrid, boost: int = SATURATION_BOOST) -> U8Image:
    """Lab raster to saturated sRGB uint8."""
    return saturate_rgb(lab_to_rgb(raster), boost)


def save_png(path: Path, rgb: U8Image) -> Path:
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8)).save(path)
    return path


def small_output_path(path: Path) -> Path:
    return path.with_name(f"{path.stem}_small.png")


def write_outputs(
    raster: LabGrid, out_path: Path, ratio: int, boost: int = SATURATION_BOOST
) -> Tuple[Path, Path]:
    """
    Write the block-upsampled image to out_path and the output-resolution
    image next to it as <stem>_small.png. Returns both paths.
    """
    small = render_rgb(raster, boost)
    big = upsample_blocks(small, ratio)
    big_path = save_png(out_path, big)
    small_path = save_png(small_output_path(big_path), small)
    return big_path, small_path


__all__ = [
    "LabImage",
    "load_image_rgb",
    "upsample_blocks",
    "upsample_ratio",
    "saturate_rgb",
    "render_rgb",
    "save_png",
    "small_output_path",
    "write_outputs",
]
