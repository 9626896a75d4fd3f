"""Tests for ordered fallback ladders."""

import pytest

from src.utils.fallback import Attempt, FallbackExhaustedError, first_success


def _succeed(value):
    async def run():
        return value

    return run


def _fail(message, calls=None):
    async def run():
        if calls is not None:
            calls.append(message)
        raise RuntimeError(message)

    return run


class TestFirstSuccess:
    @pytest.mark.asyncio
    async def test_first_rung_wins(self) -> None:
        calls: list[str] = []
        name, result = await first_success([
            Attempt("primary", _succeed("a")),
            Attempt("secondary", _fail("should not run", calls)),
        ])
        assert (name, result) == ("primary", "a")
        assert calls == []

    @pytest.mark.asyncio
    async def test_falls_through_in_order(self) -> None:
        calls: list[str] = []
        name, result = await first_success([
            Attempt("copy", _fail("copy broke", calls)),
            Attempt("reencode", _fail("reencode broke", calls)),
            Attempt("plain", _succeed("c")),
        ])
        assert (name, result) == ("plain", "c")
        assert calls == ["copy broke", "reencode broke"]

    @pytest.mark.asyncio
    async def test_exhausted_reports_every_failure(self) -> None:
        with pytest.raises(FallbackExhaustedError) as exc_info:
            await first_success([
                Attempt("one", _fail("first")),
                Attempt("two", _fail("second")),
            ])

        errors = exc_info.value.errors
        assert [name for name, _ in errors] == ["one", "two"]
        assert "first" in str(exc_info.value)
        assert "second" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_ladder_is_exhausted(self) -> None:
        with pytest.raises(FallbackExhaustedError):
            await first_success([])
