from __future__ import annotations

"""
Processor: owns the palette, cluster table, superpixel grid and run state for
one run, and exposes the per-iteration operations in the order the driving
loop calls them.

  refine_superpixels -> associate_superpixels -> refine_palette -> schedule/expand
"""

from typing import Callable, Dict, Optional

import numpy as np

from ..core_types import Dimension, KeyGrid, LabColor, LabGrid
from ..image_io import LabImage
from ..palette import Palette
from ..pca import critical_temperature, perturbation_delta, principal_axis
from ..superpixels import SuperpixelGrid
from ..utils import debug_log, key_value_pairs_to_string, warn
from .associate import associate
from .expand import expand_palette, perturb_pairs, refine_palette
from .refine import refine_superpixels, spatial_weight
from .state import RunConfig, RunState, update_schedule


class Processor:
    def __init__(self, source: LabImage, config: RunConfig, *, debug: bool = False) -> None:
        config.validate()
        if config.output_size.height > source.height or config.output_size.width > source.width:
            raise ValueError(
                f"output {config.output_size.width}x{config.output_size.height} is larger "
                f"than input {source.width}x{source.height}"
            )

        self.source = source
        self.config = config
        self.debug = debug
        self.weight = spatial_weight(config.m_spatial, source.size, config.output_size)

        # One logical colour: the image mean, as a pair of identical sub-colours.
        self.palette = Palette.initial(source.mean_colour())
        self.grid = SuperpixelGrid.regular(source.lab, config.output_size, self.palette.keys())

        axis = principal_axis(self.grid.colour_array().reshape(-1, 3))
        self.state = RunState.from_config(config, critical_temperature(axis))

        # Nudge the second sub-colour so the pair can separate.
        delta = perturbation_delta(axis)
        perturb_pairs(self.palette, delta)

        if debug:
            debug_log(
                key_value_pairs_to_string(
                    [
                        ("Critical temperature", self.state.temperature),
                        ("Perturb delta", delta),
                        ("Spatial weight", self.weight),
                    ]
                )
            )

    # Read-only views

    @property
    def output_size(self) -> Dimension:
        return self.config.output_size

    @property
    def temperature(self) -> float:
        return self.state.temperature

    @property
    def k(self) -> int:
        return self.state.k

    @property
    def converged(self) -> bool:
        return self.state.converged

    @property
    def iteration(self) -> int:
        return self.state.iteration

    # Per-iteration operations

    def refine_superpixels(self) -> None:
        refine_superpixels(self.grid, self.source.lab, self.weight)

    def associate_superpixels(self) -> bool:
        """Associate and apply the NaN guard. Returns True if the run must stop."""
        has_nan = associate(self.grid, self.palette, self.state.temperature)
        if has_nan:
            warn("NaN palette probability; stopping after this iteration")
            self.state.converged = True
        return has_nan

    def refine_palette(self) -> float:
        delta = refine_palette(self.grid, self.palette)
        if self.debug:
            debug_log(f"palette delta={delta:.4f}")
        return delta

    def expand_palette(self) -> None:
        expand_palette(self.palette, self.state, self.grid, debug=self.debug)

    def step(self, on_associate: Optional[Callable[["Processor"], None]] = None) -> bool:
        """
        One outer iteration. A NaN marginal ends the iteration right after
        association. on_associate, if given, runs right after association.
        Returns the convergence flag.
        """
        if self.debug:
            debug_log(
                key_value_pairs_to_string(
                    [
                        ("Iteration", self.state.iteration),
                        ("K", self.state.k),
                        ("Palette", len(self.palette)),
                        ("Temperature", self.state.temperature),
                    ]
                )
            )

        self.refine_superpixels()
        has_nan = self.associate_superpixels()
        if on_associate is not None:
            on_associate(self)
        if has_nan:
            self.state.iteration += 1
            return True

        delta = self.refine_palette()
        temperature = self.state.temperature
        attempt_expand = update_schedule(self.state, delta)
        if self.debug and self.state.temperature != temperature:
            debug_log(
                f"reduced temperature {temperature:.4f} -> {self.state.temperature:.4f} "
                f"(decay {self.state.temperature_decay})"
            )
        if self.debug and self.state.converged:
            debug_log(f"converged at iteration {self.state.iteration}")
        if attempt_expand:
            self.expand_palette()

        self.state.iteration += 1
        return self.state.converged

    # Output

    def finalise(self) -> None:
        """Re-associate once more so every chosen key refers to the final palette."""
        associate(self.grid, self.palette, self.state.temperature)

    def palette_key_grid(self) -> KeyGrid:
        return self.grid.palette_keys()

    def palette_raster(self) -> LabGrid:
        """[H_out, W_out, 3] Lab of each superpixel's chosen palette colour."""
        keys = self.grid.palette_keys()
        out = np.full(keys.shape + (3,), np.nan, dtype=np.float64)
        for key, entry in self.palette.items():
            out[keys == key] = entry.color.as_array()
        return out

    def palette_colours(self) -> Dict[int, LabColor]:
        return self.palette.colours


__all__ = ["Processor"]
