"""Tests for LoadRegistry and LoadToken."""

import asyncio

import pytest

from src.exceptions import LoadAbortedError
from src.services.load_registry import LoadRegistry, LoadToken, is_abort


class TestLoadToken:
    """Tests for LoadToken."""

    def test_raise_if_cancelled(self):
        token = LoadToken(key=("a", "b", "c"))
        token.raise_if_cancelled()

        token.cancel()

        with pytest.raises(LoadAbortedError):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_cancel_cancels_attached_task(self):
        token = LoadToken(key="k")
        token.task = asyncio.create_task(asyncio.sleep(10))

        token.cancel()

        with pytest.raises(asyncio.CancelledError):
            await token.task
        assert token.cancelled


class TestIsAbort:
    def test_classifies_abort_outcomes(self):
        assert is_abort(LoadAbortedError("k"))
        assert is_abort(asyncio.CancelledError())
        assert not is_abort(RuntimeError("boom"))


class TestLoadRegistry:
    """Tests for LoadRegistry."""

    def test_start_supersedes_previous_token(self):
        registry = LoadRegistry()
        first = registry.start("editor", "A")
        second = registry.start("editor", "B")

        assert first.cancelled
        assert not second.cancelled
        assert registry.is_current("editor", second)
        assert not registry.is_current("editor", first)
        assert registry.active_count == 1

    def test_slots_are_independent(self):
        registry = LoadRegistry()
        a = registry.start("one", "A")
        b = registry.start("two", "B")

        assert not a.cancelled
        assert not b.cancelled
        assert registry.active_count == 2

    def test_finish_only_forgets_own_token(self):
        registry = LoadRegistry()
        first = registry.start("editor", "A")
        second = registry.start("editor", "B")

        registry.finish("editor", first)
        assert registry.active_count == 1

        registry.finish("editor", second)
        assert registry.active_count == 0

    def test_cancel(self):
        registry = LoadRegistry()
        token = registry.start("editor", "A")

        assert registry.cancel("editor") is True
        assert token.cancelled
        assert registry.cancel("editor") is False
