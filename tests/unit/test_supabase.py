"""Unit tests for the Supabase request helpers."""

import asyncio
import time
from unittest.mock import MagicMock

import pytest

from src.api.middleware.error_handler import BackendError
from src.core.supabase import execute, first_row


class TestExecute:
    """Tests for execute."""

    @pytest.mark.asyncio
    async def test_returns_response(self) -> None:
        """Test that the builder's response is passed through."""
        request = MagicMock()
        request.execute.return_value.data = [{"id": 1}]

        response = await execute(request, "load rows")

        assert response.data == [{"id": 1}]
        request.execute.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_wraps_failures(self) -> None:
        """Test that any client failure becomes a BackendError naming the action."""
        request = MagicMock()
        request.execute.side_effect = ConnectionError("connection reset")

        with pytest.raises(BackendError, match="Failed to load rows") as exc_info:
            await execute(request, "load rows")

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_slow_request_does_not_block_event_loop(self) -> None:
        """Test that other tasks keep running while a request is in flight."""
        request = MagicMock()
        request.execute.side_effect = lambda: time.sleep(0.3)
        ticks = 0

        async def ticker() -> None:
            nonlocal ticks
            while True:
                await asyncio.sleep(0.01)
                ticks += 1

        task = asyncio.create_task(ticker())
        try:
            await execute(request, "load rows")
        finally:
            task.cancel()

        assert ticks >= 5


class TestFirstRow:
    """Tests for first_row."""

    def test_list_payload(self) -> None:
        """Test that the first element of a list payload is returned."""
        assert first_row([{"id": 1}, {"id": 2}]) == {"id": 1}

    def test_empty_payloads(self) -> None:
        """Test that empty lists and None normalize to None."""
        assert first_row([]) is None
        assert first_row(None) is None

    def test_single_object_payload(self) -> None:
        """Test that an RPC returning one object is passed through."""
        assert first_row({"id": 1}) == {"id": 1}
