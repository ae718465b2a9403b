from heartwood.commands import Command, UpdateScale, StartAnimation, StopAnimation, SpawnInstance
from heartwood.growth import GrowthConfig, GrowthController, GrowthState, Sample
from heartwood.samples import HeartRateHistory, synthetic_samples
from heartwood.scheduler import TickScheduler
from heartwood.settings import settings

__all__ = [
    "Command",
    "UpdateScale",
    "StartAnimation",
    "StopAnimation",
    "SpawnInstance",
    "GrowthConfig",
    "GrowthController",
    "GrowthState",
    "Sample",
    "HeartRateHistory",
    "synthetic_samples",
    "TickScheduler",
    "settings",
]
