# pixel_abstraction/engine/__init__.py
"""
Annealing engine.

Public API:
  Processor       : owns palette, superpixel grid and run state for one run.
  RunConfig       : validated, immutable run parameters.
  RunState        : mutable temperature/K/convergence state.
  update_schedule : per-iteration temperature and convergence rule.
  pixelate        : drive a run to convergence and return the result.
"""

from .state import RunConfig, RunState, update_schedule
from .processor import Processor
from .run import PixelationResult, pixelate, pixelate_with_config, run_processor

__all__ = [
    "RunConfig",
    "RunState",
    "update_schedule",
    "Processor",
    "PixelationResult",
    "pixelate",
    "pixelate_with_config",
    "run_processor",
]
