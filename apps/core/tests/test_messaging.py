import pytest

from common.messaging.reliable import BrokerPublishError, ReliableBrokerPublisher
from common.messaging.types import MatchCommittedEvent
from infrastructure import worker
from infrastructure.queues import EFFECT_QUEUES, QUEUES

EVENT = MatchCommittedEvent(match_id=7, creator_id="u1", opponent_id="u2", winner_id="u1", fingerprint="fp")


@pytest.fixture(autouse=True)
def fresh_worker_state(monkeypatch):
    monkeypatch.setattr(worker, "breakers", {})
    monkeypatch.setattr(worker, "outcomes", worker.StepOutcomes())
    monkeypatch.setattr(worker, "STEP_BACKOFF_S", 0)


class FlakyStep:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    async def __call__(self, event):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("narrative API unavailable")
        return {"match_id": event.match_id}


class FakeBroker:
    def __init__(self, down=(), flaky=()):
        self.down = set(down)
        self.flaky = set(flaky)
        self.attempts = []
        self.delivered = []

    async def publish(self, message, *, channel):
        self.attempts.append(channel)
        if channel in self.down:
            raise ConnectionError(f"{channel} unreachable")
        if channel in self.flaky:
            self.flaky.discard(channel)
            raise ConnectionError(f"{channel} hiccup")
        self.delivered.append((channel, message.event_id))


# ----------------------------------------------------------------- run_step
async def test_step_is_retried_until_it_succeeds():
    step = FlakyStep(failures=1)

    result = await worker.run_step("roast", EVENT, step)

    assert result == {"match_id": 7}
    assert step.calls == 2
    assert worker.outcomes == {"roast:ok": 1}
    assert worker.breakers["roast"].consecutive_failures == 0


async def test_step_gives_up_after_the_last_attempt():
    step = FlakyStep(failures=99)

    with pytest.raises(ConnectionError):
        await worker.run_step("hall", EVENT, step)

    assert step.calls == worker.STEP_ATTEMPTS
    assert worker.outcomes == {"hall:failed": 1}


async def test_failing_step_does_not_trip_other_steps(monkeypatch):
    monkeypatch.setattr(worker, "STEP_ATTEMPTS", 1)
    worker.breakers["roast"] = worker.CircuitBreaker("roast", threshold=1)

    with pytest.raises(ConnectionError):
        await worker.run_step("roast", EVENT, FlakyStep(failures=99))
    result = await worker.run_step("badges", EVENT, FlakyStep(failures=0))

    assert worker.breakers["roast"].opened_at is not None
    assert worker.breakers["badges"].opened_at is None
    assert result == {"match_id": 7}


# ----------------------------------------------------------- circuit breaker
def test_breaker_opens_after_threshold_and_half_opens_after_cooldown(monkeypatch):
    clock = [100.0]
    monkeypatch.setattr(worker.time, "monotonic", lambda: clock[0])
    breaker = worker.CircuitBreaker("roast", threshold=2, cooldown_s=60)

    breaker.failed()
    breaker.check()
    breaker.failed()
    with pytest.raises(worker.BreakerOpenError):
        breaker.check()

    clock[0] += 61
    breaker.check()
    assert breaker.opened_at is None
    breaker.succeeded()
    assert breaker.consecutive_failures == 0


async def test_open_breaker_skips_the_step_without_extending_cooldown():
    breaker = worker.CircuitBreaker("roast", threshold=1, cooldown_s=60)
    breaker.failed()
    opened_at = breaker.opened_at
    worker.breakers["roast"] = breaker
    step = FlakyStep(failures=0)

    with pytest.raises(worker.BreakerOpenError):
        await worker.run_step("roast", EVENT, step)

    assert step.calls == 0
    assert breaker.opened_at == opened_at
    assert breaker.consecutive_failures == 1
    assert worker.outcomes == {"roast:failed": 1}


# ------------------------------------------------------------------ fan-out
async def test_fan_out_delivers_to_healthy_channels_when_one_is_down():
    broker = FakeBroker(down={str(QUEUES.GENERATE_MATCH_ROAST)})
    publisher = ReliableBrokerPublisher(broker, max_retries=2, initial_delay_s=0)

    result = await publisher.fan_out(EVENT, EFFECT_QUEUES)

    assert result["failed"] == 1
    assert result["published"] == len(EFFECT_QUEUES) - 1
    assert result["event_id"] == EVENT.event_id
    assert {channel for channel, _ in broker.delivered} == {str(q) for q in EFFECT_QUEUES} - {
        str(QUEUES.GENERATE_MATCH_ROAST),
    }
    assert broker.attempts.count(str(QUEUES.GENERATE_MATCH_ROAST)) == 3


async def test_publish_recovers_from_a_transient_failure():
    broker = FakeBroker(flaky={str(QUEUES.EVALUATE_BADGES)})
    publisher = ReliableBrokerPublisher(broker, max_retries=3, initial_delay_s=0)

    retries = await publisher.publish(EVENT, queue=QUEUES.EVALUATE_BADGES)

    assert retries == 1
    assert broker.delivered == [(str(QUEUES.EVALUATE_BADGES), EVENT.event_id)]


async def test_publish_raises_once_retries_are_exhausted():
    broker = FakeBroker(down={str(QUEUES.SYNC_CATALOGS)})
    publisher = ReliableBrokerPublisher(broker, max_retries=1, initial_delay_s=0)

    with pytest.raises(BrokerPublishError):
        await publisher.publish(EVENT, queue=QUEUES.SYNC_CATALOGS)

    assert len(broker.attempts) == 2
