# commerce/core/outcome.py
"""
Best-effort side effects.

Some calls must never fail the operation that triggered them:
  - signed thumbnail / image URL generation
  - order notifications
  - per-item "buy again" additions

Instead of a try/except at every call site, they go through `attempt()`,
which returns an `Outcome`. The caller decides explicitly what to do with
a failure (usually: use `.value`, which is None, and move on). The
failure itself is logged once, here.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default: T) -> T:
        return self.value if self.ok and self.value is not None else default


def attempt(
    description: str,
    fn: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> Outcome[T]:
    """
    Run `fn(*args, **kwargs)` and capture the result or the exception.

    Failures are logged as warnings with `description` and never raised.
    """
    try:
        return Outcome(value=fn(*args, **kwargs))
    except Exception as exc:
        logger.warning("%s failed: %s", description, exc)
        return Outcome(error=exc)
