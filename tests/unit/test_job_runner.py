import asyncio

from vertex_processor.worker.job_runner import JobRunner, UnitOutcome, clamp_concurrency


def _make_runner(concurrency: int = 3) -> JobRunner[int]:
    return JobRunner(concurrency, poll_interval_seconds=0.001)


class TestClampConcurrency:
    def test_bounds(self) -> None:
        assert clamp_concurrency(0) == 1
        assert clamp_concurrency(-5) == 1
        assert clamp_concurrency(4) == 4
        assert clamp_concurrency(50) == 6


class TestJobRunner:
    async def test_every_unit_has_one_outcome(self) -> None:
        runner = _make_runner()

        async def work(unit: int) -> int:
            await asyncio.sleep(0)
            return unit * 2

        outcomes = await runner.run(list(range(10)), work, str)

        assert len(outcomes) == 10
        assert sorted(o.payload for o in outcomes) == [i * 2 for i in range(10)]
        assert all(o.ok for o in outcomes)

    async def test_never_exceeds_concurrency(self) -> None:
        runner = _make_runner(3)
        in_flight = 0
        observed = 0

        async def work(unit: int) -> None:
            nonlocal in_flight, observed
            in_flight += 1
            observed = max(observed, in_flight)
            await asyncio.sleep(0.005)
            in_flight -= 1

        await runner.run(list(range(12)), work, str)

        assert observed <= 3
        assert runner.peak_in_flight == 3

    async def test_failures_are_isolated(self) -> None:
        runner = _make_runner(2)

        async def work(unit: int) -> int:
            if unit % 2:
                raise RuntimeError(f"unit {unit} broke")
            return unit

        outcomes = await runner.run([0, 1, 2, 3, 4], work, lambda u: f"r{u}")

        failed = sorted((o for o in outcomes if not o.ok), key=lambda o: o.record_id)
        assert [o.record_id for o in failed] == ["r1", "r3"]
        assert failed[0].error == "unit 1 broke"
        assert sorted(o.payload for o in outcomes if o.ok) == [0, 2, 4]

    async def test_empty_input(self) -> None:
        assert await _make_runner().run([], lambda u: asyncio.sleep(0), str) == []

    async def test_error_without_message_uses_type_name(self) -> None:
        async def work(unit: int) -> None:
            raise ValueError()

        outcomes = await _make_runner().run([1], work, str)
        assert outcomes[0].error == "ValueError"

    async def test_concurrency_is_clamped(self) -> None:
        assert _make_runner(20).concurrency == 6


class TestUnitOutcome:
    def test_error_entry(self) -> None:
        outcome = UnitOutcome(record_id="r1", error="boom")
        assert not outcome.ok
        assert outcome.error_entry() == {"error": "boom", "recordId": "r1"}
