"""
Unit tests for batched dispatch.
"""

import asyncio

import pytest

from permission_please.modules.reminders.dispatcher import BatchedDispatcher, DeliveryFailed


class TestBatchedDispatcherInit:
    """Tests for argument validation."""

    def test_rejects_zero_batch_size(self):
        async def send(_):
            return True

        with pytest.raises(ValueError):
            BatchedDispatcher(send, batch_size=0)

    def test_rejects_negative_delay(self):
        async def send(_):
            return True

        with pytest.raises(ValueError):
            BatchedDispatcher(send, inter_batch_delay=-0.1)


class TestDispatch:
    """Tests for BatchedDispatcher.dispatch."""

    @pytest.mark.asyncio
    async def test_twelve_items_in_batches_of_five(self, recording_sleep):
        """12 items -> 3 batches, 2 pauses, every item sent once."""
        seen = []

        async def send(item):
            seen.append(item)
            return True

        dispatcher = BatchedDispatcher(
            send, batch_size=5, inter_batch_delay=0.2, sleep=recording_sleep
        )
        result = await dispatcher.dispatch(list(range(12)))

        assert result.sent == 12
        assert result.errors == 0
        assert result.batches == 3
        assert recording_sleep.calls == [0.2, 0.2]
        assert sorted(seen) == list(range(12))

    @pytest.mark.asyncio
    async def test_single_batch_does_not_sleep(self, recording_sleep):
        async def send(_):
            return True

        dispatcher = BatchedDispatcher(send, batch_size=5, sleep=recording_sleep)
        result = await dispatcher.dispatch([1, 2, 3])

        assert result.sent == 3
        assert result.batches == 1
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_empty_input(self, recording_sleep):
        async def send(_):
            raise AssertionError("must not be called")

        dispatcher = BatchedDispatcher(send, sleep=recording_sleep)
        result = await dispatcher.dispatch([])

        assert (result.sent, result.errors, result.batches) == (0, 0, 0)
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_raising_send_is_isolated(self, recording_sleep):
        """A raising send in the first batch does not stop batches 2 and 3."""

        async def send(item):
            if item == 2:
                raise ConnectionError("smtp down")
            return True

        dispatcher = BatchedDispatcher(send, batch_size=5, sleep=recording_sleep)
        result = await dispatcher.dispatch(list(range(12)))

        assert result.sent == 11
        assert result.errors == 1
        assert result.attempted == 12
        assert result.batches == 3
        item, error = result.failures[0]
        assert item == 2
        assert isinstance(error, ConnectionError)

    @pytest.mark.asyncio
    async def test_false_return_counts_as_error(self, recording_sleep):
        async def send(item):
            return item % 2 == 0

        dispatcher = BatchedDispatcher(send, batch_size=5, sleep=recording_sleep)
        result = await dispatcher.dispatch(list(range(6)))

        assert result.sent == 3
        assert result.errors == 3
        assert all(isinstance(error, DeliveryFailed) for _, error in result.failures)

    @pytest.mark.asyncio
    async def test_failure_is_logged_with_description(self, recording_sleep, caplog):
        async def send(_):
            return False

        dispatcher = BatchedDispatcher(
            send,
            sleep=recording_sleep,
            describe=lambda item: f"parent-{item}@example.com",
        )
        await dispatcher.dispatch([3])

        assert "parent-3@example.com" in caplog.text

    @pytest.mark.asyncio
    async def test_batches_run_concurrently_up_to_batch_size(self, recording_sleep):
        in_flight = 0
        peak = 0

        async def send(_):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return True

        dispatcher = BatchedDispatcher(send, batch_size=4, sleep=recording_sleep)
        result = await dispatcher.dispatch(list(range(10)))

        assert result.sent == 10
        assert peak == 4

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, recording_sleep):
        async def send(_):
            raise asyncio.CancelledError()

        dispatcher = BatchedDispatcher(send, sleep=recording_sleep)
        with pytest.raises(asyncio.CancelledError):
            await dispatcher.dispatch([1])
