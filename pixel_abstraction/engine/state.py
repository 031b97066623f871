from __future__ import annotations

"""
Run configuration and run state for one pixelation run.

RunConfig is immutable and validated before a run starts. RunState is the
mutable bag the processor threads through every step; update_schedule() is
the temperature/convergence state machine evaluated once per iteration.
"""

from dataclasses import dataclass

from ..constants import (
    CHANGE_ITERATIONS_THRESHOLD,
    EPSILON_CLUSTER,
    EPSILON_PALETTE,
    M_SPATIAL,
    MAX_PALETTE_COLOURS,
    MIN_PALETTE_COLOURS,
    TEMPERATURE_DECAY,
    TEMPERATURE_FINAL,
)
from ..core_types import Dimension


@dataclass(frozen=True)
class RunConfig:
    output_size: Dimension
    max_colours: int
    temperature_final: float = TEMPERATURE_FINAL
    temperature_decay: float = TEMPERATURE_DECAY
    epsilon_palette: float = EPSILON_PALETTE
    epsilon_cluster: float = EPSILON_CLUSTER
    change_iterations_threshold: int = CHANGE_ITERATIONS_THRESHOLD
    m_spatial: float = M_SPATIAL

    def validate(self) -> "RunConfig":
        """Raise ValueError on an unusable configuration; return self otherwise."""
        if self.output_size.width < 1 or self.output_size.height < 1:
            raise ValueError(
                f"output size must be at least 1x1, got "
                f"{self.output_size.width}x{self.output_size.height}"
            )
        if not MIN_PALETTE_COLOURS <= self.max_colours <= MAX_PALETTE_COLOURS:
            raise ValueError(
                f"colours must be in [{MIN_PALETTE_COLOURS}, {MAX_PALETTE_COLOURS}], "
                f"got {self.max_colours}"
            )
        if self.temperature_final <= 0.0:
            raise ValueError("temperature_final must be positive")
        if not 0.0 < self.temperature_decay < 1.0:
            raise ValueError("temperature_decay must be in (0, 1)")
        if self.epsilon_palette < 0.0 or self.epsilon_cluster < 0.0:
            raise ValueError("epsilon thresholds must be non-negative")
        if self.change_iterations_threshold < 1:
            raise ValueError("change_iterations_threshold must be at least 1")
        if self.m_spatial < 0.0:
            raise ValueError("m_spatial must be non-negative")
        return self


@dataclass
class RunState:
    temperature: float
    temperature_final: float
    k: int
    k_max: int
    epsilon_palette: float
    epsilon_cluster: float
    change_iterations_threshold: int = CHANGE_ITERATIONS_THRESHOLD
    temperature_decay: float = TEMPERATURE_DECAY
    iteration: int = 0
    last_change_iteration: int = 0
    converged: bool = False

    @classmethod
    def from_config(cls, config: RunConfig, temperature: float) -> "RunState":
        return cls(
            temperature=temperature,
            temperature_final=config.temperature_final,
            k=1,
            k_max=config.max_colours,
            epsilon_palette=config.epsilon_palette,
            epsilon_cluster=config.epsilon_cluster,
            change_iterations_threshold=config.change_iterations_threshold,
            temperature_decay=config.temperature_decay,
        )

    @property
    def iterations_since_change(self) -> int:
        return self.iteration - self.last_change_iteration

    @property
    def can_expand(self) -> bool:
        return self.k < self.k_max

    def reduce_temperature(self) -> float:
        self.temperature *= self.temperature_decay
        return self.temperature


def update_schedule(state: RunState, delta: float) -> bool:
    """
    Advance the annealing state machine after a palette update moved the
    palette by `delta`. Returns True when palette expansion should be attempted.

    - Too long since the last recorded change: converge unconditionally.
    - delta < epsilon_palette: converge if cold enough with a full palette,
      otherwise record the change and anneal. Expansion is attempted either way.
    - Otherwise nothing changes.
    """
    if state.iterations_since_change >= state.change_iterations_threshold:
        state.converged = True
        return False

    if not delta < state.epsilon_palette:
        return False

    if state.temperature <= state.temperature_final and state.k >= state.k_max:
        state.converged = True
    else:
        state.last_change_iteration = state.iteration
        state.reduce_temperature()
    return True


__all__ = ["RunConfig", "RunState", "update_schedule"]
