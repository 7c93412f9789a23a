"""
Incremental driver: performs a bounded number of steps per external tick.

The caller owns the clock (an animation timer, an event loop, a test). Each
call to ``tick()`` advances the simulator by ``steps_per_tick`` indices, in
order, and reports every produced StepRecord through ``on_step``. Pausing only
stops the ticks from doing work; resuming continues at the next untaken index.
"""

from __future__ import annotations

from typing import Callable, Optional

from .history import StepRecord

StepCallback = Callable[[StepRecord], None]
CompleteCallback = Callable[[], None]


class SimulationRunner:
    def __init__(
        self,
        simulator,
        companion=None,
        steps_per_tick: int = 1,
        infinite_mode: bool = False,
        verbose: bool = False,
    ) -> None:
        self.simulator = simulator
        self.companion = companion
        self.steps_per_tick = max(1, int(steps_per_tick))
        self.infinite_mode = bool(infinite_mode)
        self.verbose = verbose

        self.current_step = simulator.current_step
        self.is_running = False
        self.finished = False
        self.on_step: Optional[StepCallback] = None
        self.on_complete: Optional[CompleteCallback] = None

    def set_callbacks(self, on_step: Optional[StepCallback], on_complete: Optional[CompleteCallback] = None) -> None:
        self.on_step = on_step
        self.on_complete = on_complete

    def set_speed(self, steps_per_tick: int) -> None:
        self.steps_per_tick = max(1, int(steps_per_tick))

    def set_infinite_mode(self, infinite: bool) -> None:
        self.infinite_mode = bool(infinite)
        if infinite:
            self.finished = False

    def start(self) -> None:
        """Start or resume."""
        if self.finished:
            return
        self.is_running = True

    def pause(self) -> None:
        self.is_running = False

    def restart(self) -> None:
        """Stop and discard all computed steps."""
        self.pause()
        self.simulator.reset()
        if self.companion is not None:
            self.companion.reset()
        self.current_step = 0
        self.finished = False

    @property
    def running(self) -> bool:
        return self.is_running

    @property
    def step(self) -> int:
        return self.current_step

    @property
    def progress(self) -> float:
        total = self.simulator.total_steps
        if total <= 0:
            return 1.0 if self.current_step > 0 else 0.0
        return min(1.0, self.current_step / total)

    def _complete(self) -> None:
        self.is_running = False
        self.finished = True
        if self.verbose:
            print(f"[runner] completed at step {self.current_step - 1}/{self.simulator.total_steps}")
        if self.on_complete is not None:
            self.on_complete()

    def tick(self) -> int:
        """
        Advance by up to steps_per_tick steps.

        Returns:
            Number of steps taken during this tick.
        """
        if not self.is_running:
            return 0

        taken = 0
        for _ in range(self.steps_per_tick):
            if not self.is_running:  # paused from a callback
                break
            if not self.infinite_mode and self.current_step > self.simulator.total_steps:
                self._complete()
                break

            n = self.current_step
            record = self.simulator.step(n)
            if self.companion is not None:
                self.companion.step(n)
            self.current_step = n + 1
            taken += 1
            if self.on_step is not None:
                self.on_step(record)

            if not self.infinite_mode and self.current_step > self.simulator.total_steps:
                self._complete()
                break
        return taken

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Tick until completion, a pause, or max_ticks ticks.

        Returns:
            Number of ticks performed.
        """
        if self.infinite_mode and max_ticks is None:
            raise ValueError("max_ticks is required in infinite mode")
        self.start()
        ticks = 0
        while self.is_running and (max_ticks is None or ticks < max_ticks):
            self.tick()
            ticks += 1
        return ticks


__all__ = ["SimulationRunner", "StepCallback", "CompleteCallback"]
