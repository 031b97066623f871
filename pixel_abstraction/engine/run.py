from __future__ import annotations

"""
Driving loop for one pixelation run.

Builds a Processor, steps it until the run state reports convergence, does a
final association and returns the palette-key grid plus the resolved Lab
raster at output resolution.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from ..core_types import Dimension, KeyGrid, LabColor, LabGrid
from ..image_io import LabImage, render_rgb, save_png
from ..utils import (
    debug_log,
    format_seconds_compact,
    key_value_pairs_to_string,
    print_progress_line,
)
from .processor import Processor
from .state import RunConfig


@dataclass(frozen=True)
class PixelationResult:
    keys: KeyGrid
    raster: LabGrid
    palette: Dict[int, LabColor]
    iterations: int
    elapsed: float

    @property
    def size(self) -> Dimension:
        return Dimension(int(self.keys.shape[0]), int(self.keys.shape[1]))


def frame_path(frames_dir: Path, stem: str, iteration: int) -> Path:
    return frames_dir / f"intermediate_{stem}_{iteration}.png"


def _frame_writer(frames_dir: Path, stem: str) -> Callable[[Processor], None]:
    def write(processor: Processor) -> None:
        path = frame_path(frames_dir, stem, processor.iteration)
        save_png(path, render_rgb(processor.palette_raster()))
        debug_log(f"frame {path.name}")

    return write


def run_processor(
    processor: Processor,
    *,
    frames_dir: Optional[Path] = None,
    stem: str = "image",
    on_iteration: Optional[Callable[[Processor], None]] = None,
    progress: bool = False,
) -> PixelationResult:
    """Step an already-built processor to convergence and collect the result."""
    t0 = time.perf_counter()
    on_associate = _frame_writer(frames_dir, stem) if frames_dir is not None else None

    while not processor.converged:
        processor.step(on_associate)
        if on_iteration is not None:
            on_iteration(processor)
        if progress and not processor.debug:
            print_progress_line(
                key_value_pairs_to_string(
                    [
                        ("Iteration", processor.iteration),
                        ("K", processor.k),
                        ("T", round(processor.temperature, 3)),
                    ]
                )
            )
    if progress and not processor.debug:
        print_progress_line("", final=True)

    processor.finalise()
    elapsed = time.perf_counter() - t0

    if processor.debug:
        debug_log(
            f"converged after {processor.iteration} iterations "
            f"in {format_seconds_compact(elapsed)}"
        )

    return PixelationResult(
        keys=processor.palette_key_grid(),
        raster=processor.palette_raster(),
        palette=processor.palette_colours(),
        iterations=processor.iteration,
        elapsed=elapsed,
    )


def pixelate_with_config(
    source: LabImage,
    config: RunConfig,
    *,
    debug: bool = False,
    frames_dir: Optional[Path] = None,
    stem: str = "image",
    on_iteration: Optional[Callable[[Processor], None]] = None,
    progress: bool = False,
) -> PixelationResult:
    processor = Processor(source, config, debug=debug)
    return run_processor(
        processor,
        frames_dir=frames_dir,
        stem=stem,
        on_iteration=on_iteration,
        progress=progress,
    )


def pixelate(
    source: LabImage,
    output_size: Dimension,
    max_colours: int,
    *,
    debug: bool = False,
    frames_dir: Optional[Path] = None,
    stem: str = "image",
    on_iteration: Optional[Callable[[Processor], None]] = None,
    progress: bool = False,
) -> PixelationResult:
    """
    Abstract `source` into an output_size pixel image with at most max_colours
    colours.

    Args:
      source: input Lab image
      output_size: superpixel grid size (height, width)
      max_colours: palette size the run grows to, in [2, 16]
      debug: verbose per-iteration logging
      frames_dir: if set, write intermediate_<stem>_<iteration>.png after every
        association
      on_iteration: called with the processor after every step
      progress: single-line progress output when not in debug mode
    Returns:
      PixelationResult
    Raises:
      ValueError on an invalid configuration or an output larger than the input.
    """
    config = RunConfig(output_size=output_size, max_colours=max_colours)
    return pixelate_with_config(
        source,
        config,
        debug=debug,
        frames_dir=frames_dir,
        stem=stem,
        on_iteration=on_iteration,
        progress=progress,
    )


__all__ = [
    "PixelationResult",
    "frame_path",
    "run_processor",
    "pixelate_with_config",
    "pixelate",
]
