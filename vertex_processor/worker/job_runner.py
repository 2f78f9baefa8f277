import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from vertex_processor.logging.logger import Log

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 6

T = TypeVar("T")


def clamp_concurrency(value: int) -> int:
    return max(MIN_CONCURRENCY, min(MAX_CONCURRENCY, int(value)))


@dataclass(frozen=True)
class UnitOutcome:
    """Result of one unit: a payload on success, an error message otherwise."""

    record_id: str | None
    payload: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def error_entry(self) -> dict[str, Any]:
        return {"error": self.error, "recordId": self.record_id}


class JobRunner(Generic[T]):
    """Runs units of work with at most ``concurrency`` in flight.

    A cursor walks the unit list; whenever fewer than ``concurrency`` units
    are active the next one is dispatched as a task, and each completion
    dispatches again. The caller waits for drain by polling. A failing unit
    is recorded as an error outcome and never cancels its siblings.
    Outcomes are collected in completion order.
    """

    def __init__(self, concurrency: int, poll_interval_seconds: float = 0.1) -> None:
        self._concurrency = clamp_concurrency(concurrency)
        self._poll_interval_seconds = poll_interval_seconds
        self._peak_in_flight = 0

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def peak_in_flight(self) -> int:
        return self._peak_in_flight

    async def run(
        self,
        units: Sequence[T],
        work: Callable[[T], Awaitable[Any]],
        record_id_of: Callable[[T], str | None],
    ) -> list[UnitOutcome]:
        outcomes: list[UnitOutcome] = []
        tasks: set[asyncio.Task[None]] = set()
        cursor = 0
        active = 0
        self._peak_in_flight = 0

        async def run_unit(unit: T) -> None:
            record_id = record_id_of(unit)
            Log.debug(f"Unit {record_id} dispatched")
            try:
                payload = await work(unit)
            except Exception as exc:
                Log.error(f"Unit {record_id} failed: {exc}")
                outcomes.append(UnitOutcome(record_id=record_id, error=str(exc) or type(exc).__name__))
            else:
                Log.info(f"Unit {record_id} completed")
                outcomes.append(UnitOutcome(record_id=record_id, payload=payload))

        def on_done(task: asyncio.Task[None]) -> None:
            nonlocal active
            tasks.discard(task)
            active -= 1
            dispatch()

        def dispatch() -> None:
            nonlocal cursor, active
            while active < self._concurrency and cursor < len(units):
                unit = units[cursor]
                cursor += 1
                active += 1
                self._peak_in_flight = max(self._peak_in_flight, active)
                task = asyncio.create_task(run_unit(unit))
                tasks.add(task)
                task.add_done_callback(on_done)

        Log.info(f"Running {len(units)} units with concurrency {self._concurrency}")
        dispatch()
        while active > 0 or cursor < len(units):
            await asyncio.sleep(self._poll_interval_seconds)
        return outcomes
