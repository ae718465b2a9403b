import asyncio
import logging
from typing import Awaitable, Callable

from heartwood.commands import Command
from heartwood.growth import GrowthController

logger = logging.getLogger(__name__)

Dispatch = Callable[[list[Command]], Awaitable[None]]


class TickScheduler:
    """
    Drives ``GrowthController.tick`` at the cadence of the controller state.
    One task at a time, keyed to the controller generation it was started for.
    """

    def __init__(self, controller: GrowthController, dispatch: Dispatch):
        self.controller = controller
        self.dispatch = dispatch
        self._task: asyncio.Task | None = None
        self._generation: int | None = None

    @property
    def generation(self) -> int | None:
        return self._generation

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, generation: int) -> None:
        self.cancel()
        self._generation = generation
        self._task = asyncio.create_task(self._tick_loop(generation))

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _tick_loop(self, generation: int) -> None:
        try:
            while True:
                interval = self.controller.config.interval_for(self.controller.state)
                if interval is None or self.controller.generation != generation:
                    return
                await asyncio.sleep(interval)
                commands = self.controller.tick(generation)
                if commands:
                    await self.dispatch(commands)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("tick loop for generation %d failed", generation)

    async def join(self) -> None:
        """Waits until the current tick sequence ends."""
        if self._task is not None:
            await asyncio.wait([self._task])
