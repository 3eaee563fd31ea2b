"""Tests for correlation ID context management."""

import asyncio
import uuid

import pytest

from subwatch.observability.context import (
    clear_correlation_id,
    correlation_id_context,
    get_correlation_id,
    set_correlation_id,
)


class TestSetCorrelationId:
    """Tests for set_correlation_id function."""

    def test_generates_uuid_when_no_id_provided(self):
        """Should generate a valid UUID when no ID is provided."""
        clear_correlation_id()

        result = set_correlation_id()

        assert str(uuid.UUID(result)) == result
        assert get_correlation_id() == result

    def test_uses_provided_id(self):
        """Should use the given ID verbatim."""
        assert set_correlation_id("sweep-1") == "sweep-1"
        assert get_correlation_id() == "sweep-1"
        clear_correlation_id()


class TestClearCorrelationId:
    """Tests for clear_correlation_id function."""

    def test_clears_id(self):
        """Should reset the correlation ID to None."""
        set_correlation_id("to-clear")

        clear_correlation_id()

        assert get_correlation_id() is None


class TestCorrelationIdContext:
    """Tests for correlation_id_context manager."""

    def test_sets_and_restores(self):
        """Should restore the previous ID on exit."""
        set_correlation_id("outer")

        with correlation_id_context("timer-n1") as corr_id:
            assert corr_id == "timer-n1"
            assert get_correlation_id() == "timer-n1"

        assert get_correlation_id() == "outer"
        clear_correlation_id()

    def test_restores_after_exception(self):
        """Should restore the previous ID when the body raises."""
        clear_correlation_id()

        with pytest.raises(RuntimeError):
            with correlation_id_context("failing"):
                raise RuntimeError("boom")

        assert get_correlation_id() is None

    def test_generates_id(self):
        """Should generate an ID when none is given."""
        with correlation_id_context() as corr_id:
            assert uuid.UUID(corr_id)

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        """Should keep concurrent tasks' IDs separate."""

        async def worker(name: str) -> str:
            with correlation_id_context(name):
                await asyncio.sleep(0.01)
                return get_correlation_id()

        results = await asyncio.gather(worker("timer-a"), worker("timer-b"))

        assert results == ["timer-a", "timer-b"]
