"""
Post-commit side effects of a booking.

Calendar sync and the advisor email run after the Meeting row is committed.
Each one is wrapped by `run_side_effect`, which bounds it with a timeout and
turns every failure into a `SideEffectResult` instead of an exception.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Awaitable, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class BearerCredential:
    token: str
    expires_at: Optional[datetime] = None


@dataclass
class CalendarEventRequest:
    attendee_name: str
    date: date
    time: str
    duration_minutes: int
    attendee_email: str
    owner_email: str
    description: str = ""


@dataclass
class CalendarEvent:
    event_id: Optional[str]
    event_link: Optional[str]


@dataclass
class MeetingDetails:
    """Everything the advisor notification needs, detached from the ORM session"""

    meeting_id: str
    link_name: str
    owner_name: Optional[str]
    owner_email: Optional[str]
    client_name: str
    client_email: str
    profile_url: Optional[str]
    date: date
    time: str
    duration: int
    notes: Optional[str] = None
    # (question text, answer) in the link's question order
    answers: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class SideEffectResult:
    name: str
    ok: bool
    reason: Optional[str] = None
    skipped: bool = False


class CalendarGateway(Protocol):
    async def create_event(self, bearer_token: str, request: CalendarEventRequest) -> CalendarEvent:
        ...


class OwnerNotifier(Protocol):
    async def notify_owner(self, details: MeetingDetails) -> None:
        ...


class CredentialSource(Protocol):
    async def get_bearer_credential(self, user) -> BearerCredential:
        ...


async def run_side_effect(
    name: str,
    action: Callable[[], Awaitable[Optional[SideEffectResult]]],
    timeout: float,
    context: Optional[dict] = None,
) -> SideEffectResult:
    """
    Run one side effect with its own error boundary.

    `action` may return a SideEffectResult (e.g. to report a skip); returning
    None counts as success. Timeouts and exceptions are logged with `context`
    and reported as failures.
    """
    context = context or {}
    try:
        result = await asyncio.wait_for(action(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Side effect '{name}' timed out after {timeout}s: {context}")
        return SideEffectResult(name=name, ok=False, reason=f"timed out after {timeout}s")
    except Exception as e:
        logger.error(f"Side effect '{name}' failed: {e} | {context}")
        return SideEffectResult(name=name, ok=False, reason=str(e) or e.__class__.__name__)

    if result is None:
        result = SideEffectResult(name=name, ok=True)

    if result.skipped:
        logger.info(f"Side effect '{name}' skipped: {result.reason} | {context}")
    elif result.ok:
        logger.info(f"Side effect '{name}' completed | {context}")
    return result
