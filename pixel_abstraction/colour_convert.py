from __future__ import annotations

"""
Colour conversions and metrics (D65).

Exports:
  rgb_to_linear(srgb)
  linear_to_rgb(linear)
  rgb_to_lab(rgb)
  lab_to_rgb(lab)
  rgb_to_lab_threaded(rgb, workers)
  lab_distance(lab1, lab2)
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .core_types import Lab, U8Image

# Reference white (D65)
_WHITE_D65 = (0.95047, 1.00000, 1.08883)
_EPSILON = 216.0 / 24389.0
_KAPPA = 24389.0 / 27.0

_RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)
_XYZ_TO_RGB = np.array(
    [
        [3.2404542, -1.5371385, -0.4985314],
        [-0.9692660, 1.8760108, 0.0415560],
        [0.0556434, -0.2040259, 1.0572252],
    ],
    dtype=np.float64,
)


# sRGB <-> linear


def rgb_to_linear(srgb: np.ndarray) -> np.ndarray:
    """
    Convert sRGB (non-linear 0..1) to linear RGB (0..1). Vectorised.
    """
    srgb_f = np.asarray(srgb, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        return np.where(
            srgb_f <= 0.04045, srgb_f / 12.92, ((srgb_f + 0.055) / 1.055) ** 2.4
        )


def linear_to_rgb(linear: np.ndarray) -> np.ndarray:
    """Linear RGB (0..1) back to sRGB (0..1). Negative inputs clip to 0."""
    lin = np.clip(np.asarray(linear, dtype=np.float64), 0.0, None)
    return np.where(lin <= 0.0031308, 12.92 * lin, 1.055 * lin ** (1.0 / 2.4) - 0.055)


# sRGB <-> Lab (D65)


def rgb_to_lab(rgb: np.ndarray) -> Lab:
    """
    sRGB to CIE Lab (D65).
    uint8 input is read as 0..255, float input as 0..1. Preserves shape (...,3).
    Returns float64.
    """
    rgb_arr = np.asarray(rgb)
    if rgb_arr.dtype == np.uint8:
        rgb_f = rgb_arr.astype(np.float64) / 255.0
    else:
        rgb_f = rgb_arr.astype(np.float64, copy=False)

    xyz = rgb_to_linear(rgb_f) @ _RGB_TO_XYZ.T
    xyz = xyz / np.asarray(_WHITE_D65, dtype=np.float64)

    with np.errstate(invalid="ignore"):
        f = np.where(xyz > _EPSILON, np.cbrt(xyz), (_KAPPA * xyz + 16.0) / 116.0)

    out = np.empty(rgb_f.shape, dtype=np.float64)
    out[..., 0] = 116.0 * f[..., 1] - 16.0
    out[..., 1] = 500.0 * (f[..., 0] - f[..., 1])
    out[..., 2] = 200.0 * (f[..., 1] - f[..., 2])
    return out


def lab_to_rgb(lab: Lab) -> U8Image:
    """
    CIE Lab (D65) to sRGB uint8. Out-of-gamut values are clipped and non-finite
    values render as black.
    """
    lab_f = np.nan_to_num(np.asarray(lab, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    L, a, b = lab_f[..., 0], lab_f[..., 1], lab_f[..., 2]

    fy = (L + 16.0) / 116.0
    fx = a / 500.0 + fy
    fz = fy - b / 200.0

    x = np.where(fx**3 > _EPSILON, fx**3, (116.0 * fx - 16.0) / _KAPPA)
    y = np.where(L > _KAPPA * _EPSILON, fy**3, L / _KAPPA)
    z = np.where(fz**3 > _EPSILON, fz**3, (116.0 * fz - 16.0) / _KAPPA)

    xyz = np.stack([x, y, z], axis=-1) * np.asarray(_WHITE_D65, dtype=np.float64)
    srgb = linear_to_rgb(xyz @ _XYZ_TO_RGB.T)
    return np.clip(np.round(srgb * 255.0), 0, 255).astype(np.uint8)


# Metrics


def lab_distance(lab1: np.ndarray, lab2: np.ndarray) -> np.ndarray:
    """Euclidean distance along the last axis. Broadcasts."""
    diff = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    return np.sqrt(np.sum(diff * diff, axis=-1))


# Threaded helpers


def _split_rows(height: int, parts: int) -> list[tuple[int, int]]:
    """Partition height into ~parts contiguous [start, end) row spans."""
    parts = max(1, int(parts))
    step = (height + parts - 1) // parts
    return [(i, min(i + step, height)) for i in range(0, height, step)]


def rgb_to_lab_threaded(rgb: np.ndarray, workers: int) -> Lab:
    """
    Threaded RGB->Lab conversion by splitting rows.

    Args:
      rgb: uint8 or float array [H,W,3]
      workers: number of threads; if <=1 or H<256, runs single-threaded
    Returns:
      Lab float64 array [H,W,3]
    """
    height = int(rgb.shape[0])
    if workers <= 1 or height < 256:
        return rgb_to_lab(rgb)

    chunks = _split_rows(height, workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(rgb_to_lab, rgb[s:e]) for s, e in chunks]
        parts = [f.result() for f in futures]
    return np.vstack(parts)


__all__ = [
    "rgb_to_linear",
    "linear_to_rgb",
    "rgb_to_lab",
    "lab_to_rgb",
    "lab_distance",
    "rgb_to_lab_threaded",
]
