import asyncio
import logging
import random

from pydantic import BaseModel

from heartwood.commands import Command
from heartwood.growth import GrowthConfig, GrowthController, GrowthState, Sample
from heartwood.remote import RemoteRenderer
from heartwood.samples import HeartRateHistory, synthetic_samples
from heartwood.scheduler import TickScheduler
from heartwood.settings import settings

logger = logging.getLogger(__name__)


class SessionSnapshot(BaseModel):
    session_id: str
    state: GrowthState
    scale: float
    generation: int
    latest_sample: Sample | None = None
    history: list[Sample]
    domain: tuple[int, int]


class GrowthSession:
    """One headset connection: samples in, render commands out."""

    def __init__(self,
                 session_id: str,
                 remote: RemoteRenderer,
                 config: GrowthConfig | None = None,
                 history_size: int | None = None):
        self.session_id = session_id
        self.remote = remote
        self.controller = GrowthController(config if config is not None else settings.growth)
        self.history = HeartRateHistory(history_size if history_size is not None else settings.history_size)
        self.scheduler = TickScheduler(self.controller, self._dispatch)
        self._synthetic_task: asyncio.Task | None = None
        remote.sample_callbacks.append(self.handle_sample)

    async def _dispatch(self, commands: list[Command]) -> None:
        await self.remote.execute(*commands)

    async def handle_sample(self, sample: Sample) -> list[Command]:
        generation = self.controller.generation
        previous = self.controller.latest_sample
        commands = self.controller.on_sample(sample)
        if self.controller.latest_sample is not previous:
            self.history.append(sample)
        if self.controller.generation != generation:
            self.scheduler.schedule(self.controller.generation)
        if commands:
            await self._dispatch(commands)
        return commands

    def start_synthetic(self, interval: float | None = None, rng: random.Random | None = None) -> None:
        """Feeds the session with random samples instead of a wearable."""
        if self._synthetic_task is not None:
            raise RuntimeError(f"Session {self.session_id} already runs a synthetic source.")
        interval = interval if interval is not None else settings.synthetic_interval_secs
        self._synthetic_task = asyncio.create_task(self._feed(synthetic_samples(interval=interval, rng=rng)))

    async def _feed(self, samples) -> None:
        try:
            async for sample in samples:
                await self.handle_sample(sample)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("synthetic source of session %s failed", self.session_id)
        finally:
            await samples.aclose()

    async def close(self) -> None:
        self.scheduler.cancel()
        if self._synthetic_task is not None:
            self._synthetic_task.cancel()
            await asyncio.wait([self._synthetic_task])
            self._synthetic_task = None
        if self.handle_sample in self.remote.sample_callbacks:
            self.remote.sample_callbacks.remove(self.handle_sample)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            state=self.controller.state,
            scale=self.controller.scale,
            generation=self.controller.generation,
            latest_sample=self.controller.latest_sample,
            history=self.history.samples,
            domain=self.history.domain(),
        )
