# pixel_abstraction/__init__.py
"""
pixel_abstraction package.

Purpose:
  Turn an image into low-resolution pixel art with a small adaptive palette,
  by simulated annealing over superpixels and palette colours. See pixelate.py
  for the CLI.

Public API:
  pixelate        : run one image to convergence, returns PixelationResult.
  Processor       : step-by-step access to a run.
  RunConfig       : validated run parameters.
  LabImage        : read-only Lab input image.
  write_outputs   : render, saturate, upsample and save a result raster.
  load_jobs       : parse a JSON job list.
  colour_convert  : sRGB <-> Lab transforms.
  core_types      : value types and array aliases.
  utils           : formatting and console logging helpers.

Quick start:
  from pixel_abstraction import LabImage, pixelate, write_outputs
  from pixel_abstraction.core_types import Dimension
"""

__version__ = "0.1.0"

from . import colour_convert
from . import core_types
from . import utils
from . import engine

from .core_types import Dimension, LabColor  # noqa: E402,F401
from .image_io import LabImage, write_outputs  # noqa: E402,F401
from .engine import PixelationResult, Processor, RunConfig, pixelate  # noqa: E402,F401
from .jobs import JobConfig, load_jobs  # noqa: E402,F401

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "utils",
    "engine",
    "Dimension",
    "LabColor",
    "LabImage",
    "write_outputs",
    "PixelationResult",
    "Processor",
    "RunConfig",
    "pixelate",
    "JobConfig",
    "load_jobs",
]
