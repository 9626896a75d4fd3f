"""Ordered fallback ladders: try, else try, else try."""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

from src.utils.errors import DemoNarratorError

logger = logging.getLogger(__name__)
T = TypeVar("T")


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """One rung of a fallback ladder."""

    name: str
    run: Callable[[], Awaitable[T]]


class FallbackExhaustedError(DemoNarratorError):
    """Every rung of a fallback ladder failed."""

    def __init__(self, errors: list[tuple[str, Exception]]) -> None:
        self.errors = errors
        summary = "; ".join(f"{name}: {error}" for name, error in errors)
        super().__init__(f"All fallback attempts failed ({summary})")


async def first_success(attempts: Sequence[Attempt[T]]) -> tuple[str, T]:
    """
    Run attempts in order and return the first that succeeds.

    Args:
        attempts: Ordered (name, coroutine factory) pairs

    Returns:
        Tuple of the winning attempt's name and its result

    Raises:
        FallbackExhaustedError: If every attempt raised
    """
    errors: list[tuple[str, Exception]] = []

    for index, attempt in enumerate(attempts):
        try:
            result = await attempt.run()
        except Exception as e:
            errors.append((attempt.name, e))
            remaining = len(attempts) - index - 1
            logger.warning(
                f"{attempt.name} failed: {e}"
                + (f" ({remaining} fallback(s) left)" if remaining else "")
            )
            continue

        if errors:
            logger.info(f"{attempt.name} succeeded after {len(errors)} failed attempt(s)")
        return attempt.name, result

    raise FallbackExhaustedError(errors)
