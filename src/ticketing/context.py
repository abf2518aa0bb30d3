"""Explicit request context threaded through every orchestrator call."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class RequestContext:
    """Who is acting, in which locale, and what time it is."""

    owner_id: str
    owner_email: str = ""
    owner_name: str = ""
    locale: str = "en"
    clock: Callable[[], datetime] = field(default=utc_now, compare=False)

    def now(self) -> datetime:
        return self.clock()
