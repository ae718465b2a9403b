"""
Heart-rate driven growth of the tree.

The controller maps a stream of heart-rate samples to a bounded scale value:
  - rate below the threshold: the tree grows toward ``target_scale``
  - rate at or above the threshold: the tree shrinks toward ``initial_scale``

Progression is driven from the outside by calling ``tick``. Every change of
direction bumps a generation counter; ticks issued for an older generation
are discarded, so a sequence in flight for the abandoned direction halts
immediately.
"""

import logging
import math
import threading
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from heartwood.commands import Command, UpdateScale, StartAnimation, StopAnimation, SpawnInstance

logger = logging.getLogger(__name__)


class Sample(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: int
    rate: float


class GrowthState(str, Enum):
    IDLE = "idle"
    GROWING = "growing"
    SHRINKING = "shrinking"


class GrowthConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    initial_scale: float = 0.0002
    target_scale: float = 0.008
    growth_threshold: float = 80
    growth_increment: float = 0.0001
    # math.inf resets to initial_scale in a single tick
    shrink_increment: float = 0.0001
    tick_interval_growing: float = Field(default=1.0, gt=0)
    tick_interval_shrinking: float = Field(default=0.5, gt=0)

    @model_validator(mode="after")
    def _validate_bounds(self):
        if not (math.isfinite(self.initial_scale) and math.isfinite(self.target_scale)):
            raise ValueError("Scale bounds must be finite.")
        if self.initial_scale >= self.target_scale:
            raise ValueError('"initial_scale" must be smaller than "target_scale".')
        if not math.isfinite(self.growth_increment) or self.growth_increment <= 0:
            raise ValueError('"growth_increment" must be positive and finite.')
        if math.isnan(self.shrink_increment) or self.shrink_increment <= 0:
            raise ValueError('"shrink_increment" must be positive.')
        if math.isnan(self.growth_threshold):
            raise ValueError('"growth_threshold" must be a number.')
        return self

    def interval_for(self, state: GrowthState) -> float | None:
        """Seconds between ticks in ``state``, None when nothing moves."""
        if state == GrowthState.GROWING:
            return self.tick_interval_growing
        if state == GrowthState.SHRINKING:
            return self.tick_interval_shrinking
        return None


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


class GrowthController:
    """Maps heart-rate samples to a bounded, stepwise animated tree scale."""

    def __init__(self, config: GrowthConfig | None = None):
        self._config = config if config is not None else GrowthConfig()
        self._lock = threading.RLock()
        self._state = GrowthState.IDLE
        self._scale = self._config.initial_scale
        self._generation = 0
        self._growing: bool | None = None
        self._latest: Sample | None = None

    @property
    def config(self) -> GrowthConfig:
        return self._config

    @property
    def state(self) -> GrowthState:
        return self._state

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest_sample(self) -> Sample | None:
        return self._latest

    def _accepts(self, sample: Sample) -> bool:
        if not (math.isfinite(sample.timestamp) and math.isfinite(sample.rate)):
            return False
        return self._latest is None or sample.timestamp > self._latest.timestamp

    def on_sample(self, sample: Sample) -> list[Command]:
        """Records ``sample`` and re-evaluates the growth direction.

        Samples that are not strictly newer than the last accepted one, or carry
        non-finite values, are ignored.

        Returns:
            StartAnimation or StopAnimation when the direction flips, else nothing.
        """
        with self._lock:
            if not self._accepts(sample):
                logger.debug("ignoring sample %s", sample)
                return []
            self._latest = sample

            cfg = self._config
            growing = sample.rate < cfg.growth_threshold
            commands: list[Command] = []
            if growing != self._growing:
                self._growing = growing
                self._generation += 1
                commands.append(StartAnimation() if growing else StopAnimation())
                logger.info("direction is now %s at %.2f bpm (generation %d)",
                            "grow" if growing else "shrink", sample.rate, self._generation)

            if growing:
                self._state = GrowthState.GROWING if self._scale < cfg.target_scale else GrowthState.IDLE
            else:
                self._state = GrowthState.SHRINKING if self._scale > cfg.initial_scale else GrowthState.IDLE
            return commands

    def tick(self, generation: int | None = None) -> list[Command]:
        """Moves the scale one step in the active direction.

        Args:
            generation: generation the tick was scheduled for. A stale generation
                makes the tick a no-op. None always applies to the current one.

        Returns:
            UpdateScale with the new value, followed by SpawnInstance on the step
            that completes growth, or nothing.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return []
            if self._state == GrowthState.IDLE:
                return []

            cfg = self._config
            if self._state == GrowthState.GROWING:
                new_scale = _clamp(self._scale + cfg.growth_increment, cfg.initial_scale, cfg.target_scale)
            else:
                new_scale = _clamp(self._scale - cfg.shrink_increment, cfg.initial_scale, cfg.target_scale)

            if new_scale == self._scale:
                self._state = GrowthState.IDLE
                return []

            self._scale = new_scale
            commands: list[Command] = [UpdateScale(value=new_scale)]
            if new_scale in (cfg.initial_scale, cfg.target_scale):
                if self._state == GrowthState.GROWING:
                    logger.info("tree fully grown at scale %s", new_scale)
                    commands.append(SpawnInstance())
                self._state = GrowthState.IDLE
            return commands
