"""Booking service - Meeting creation workflow"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import SIDE_EFFECT_TIMEOUT_SECONDS
from ...errors import (
    CredentialRefreshError,
    LinkExhaustedError,
    LinkExpiredError,
    NotFoundError,
    ValidationError,
)
from ...models import Meeting, SchedulingLink, User
from ...shared.time_format import meeting_start, utcnow
from ..links.repository import LinkRepository
from ..links.service import LinkStatus, evaluate_link_status
from .repository import MeetingRepository
from .schemas import BookingCreate
from .side_effects import (
    CalendarEventRequest,
    CalendarGateway,
    CredentialSource,
    MeetingDetails,
    OwnerNotifier,
    SideEffectResult,
    run_side_effect,
)

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    """The committed meeting plus what happened to its side effects"""

    meeting: Meeting
    created: bool = True
    side_effects: list[SideEffectResult] = field(default_factory=list)


def build_event_description(client_name: str, profile_url: Optional[str], answers: list[tuple[str, str]]) -> str:
    lines = [f"Meeting with {client_name}"]
    if profile_url:
        lines.append(f"Profile: {profile_url}")
    if answers:
        lines += ["", "Additional Information:"]
        lines += [f"{question}: {answer}" for question, answer in answers]
    return "\n".join(lines)


def answers_in_question_order(link: SchedulingLink, answers: dict[str, str]) -> list[tuple[str, str]]:
    """Pair answers with their question text, following the link's question order"""
    pairs = []
    for question in link.custom_questions or []:
        if question["id"] in answers:
            pairs.append((question["text"], answers[question["id"]]))
    return pairs


class BookingService:
    """
    Validates a booking against the link, persists the Meeting, then runs
    calendar sync and the advisor email as independent best-effort tasks.
    """

    def __init__(
        self,
        db: Session,
        calendar: Optional[CalendarGateway] = None,
        notifier: Optional[OwnerNotifier] = None,
        credentials: Optional[CredentialSource] = None,
        side_effect_timeout: float = SIDE_EFFECT_TIMEOUT_SECONDS,
    ):
        self.db = db
        self.calendar = calendar
        self.notifier = notifier
        self.credentials = credentials
        self.side_effect_timeout = side_effect_timeout
        self.links = LinkRepository()
        self.repo = MeetingRepository()

    def check_bookable(self, link: SchedulingLink, now: datetime) -> None:
        status = evaluate_link_status(link, self.links.count_meetings(self.db, link.id), now)
        if status == LinkStatus.EXPIRED:
            raise LinkExpiredError()
        if status == LinkStatus.EXHAUSTED_USES:
            raise LinkExhaustedError()

    def validate_request(self, link: SchedulingLink, data: BookingCreate, now: datetime) -> None:
        errors = {}

        if link.max_advance_days is not None:
            last_bookable_day = (now + timedelta(days=link.max_advance_days)).date()
            if data.date > last_bookable_day:
                errors["date"] = f"Meetings can be booked at most {link.max_advance_days} days in advance"

        known_ids = {q["id"] for q in link.custom_questions or []}
        unknown = sorted(set(data.answers) - known_ids)
        if unknown:
            errors["answers"] = f"Unknown question ids: {', '.join(unknown)}"

        if errors:
            raise ValidationError("Invalid booking request", errors=errors)

    async def submit_booking(
        self,
        data: BookingCreate,
        bearer_token: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BookingResult:
        """
        Book a meeting through a link.

        Raises NotFoundError, LinkExpiredError, LinkExhaustedError or
        ValidationError before anything is written. Once the Meeting is
        committed the call always succeeds; calendar and email failures only
        show up in `BookingResult.side_effects` and the logs.
        """
        now = now or utcnow()

        link = self.links.get_link_by_id(self.db, data.linkId)
        if not link:
            raise NotFoundError("Scheduling link not found")

        self.check_bookable(link, now)
        self.validate_request(link, data, now)

        client_email = data.attendee.email
        existing = self.repo.find_duplicate(self.db, link.id, client_email, data.date, data.time)
        if existing:
            logger.info(f"Duplicate booking for link {link.id} by {client_email} on {data.date} {data.time}")
            return BookingResult(meeting=existing, created=False)

        meeting_data = {
            "client_name": data.attendee.name.strip(),
            "client_email": client_email,
            "profile_url": data.attendee.profileUrl,
            "date": data.date,
            "time": data.time,
            # Duration always comes from the link, never from the caller
            "duration": link.duration,
            "notes": data.notes,
            "answers": dict(data.answers),
        }

        try:
            meeting = self.repo.create_meeting_claiming_use(self.db, link.id, **meeting_data)
        except IntegrityError:
            # A concurrent identical submission committed first
            self.db.rollback()
            existing = self.repo.find_duplicate(self.db, link.id, client_email, data.date, data.time)
            if existing:
                return BookingResult(meeting=existing, created=False)
            raise

        if meeting is None:
            logger.warning(f"Link {link.id} reached max uses while booking for {client_email}")
            raise LinkExhaustedError()

        logger.info(f"Meeting {meeting.id} booked on link {link.id} for {data.date} {data.time}")

        side_effects = await self.dispatch_side_effects(meeting, link, bearer_token)
        return BookingResult(meeting=meeting, created=True, side_effects=side_effects)

    async def dispatch_side_effects(
        self, meeting: Meeting, link: SchedulingLink, bearer_token: Optional[str]
    ) -> list[SideEffectResult]:
        owner: User = link.user
        answers = answers_in_question_order(link, meeting.answers or {})
        details = MeetingDetails(
            meeting_id=meeting.id,
            link_name=link.name,
            owner_name=owner.name,
            owner_email=owner.email,
            client_name=meeting.client_name,
            client_email=meeting.client_email,
            profile_url=meeting.profile_url,
            date=meeting.date,
            time=meeting.time,
            duration=meeting.duration,
            notes=meeting.notes,
            answers=answers,
        )
        context = {"meeting_id": meeting.id, "link_id": link.id, "date": str(meeting.date), "time": meeting.time}

        async def sync_calendar() -> Optional[SideEffectResult]:
            if self.calendar is None:
                return SideEffectResult(name="calendar", ok=True, skipped=True, reason="no calendar service")
            if not details.owner_email:
                return SideEffectResult(name="calendar", ok=True, skipped=True, reason="no advisor email")

            token = bearer_token
            if not token and self.credentials is not None:
                try:
                    token = (await self.credentials.get_bearer_credential(owner)).token
                except CredentialRefreshError as e:
                    return SideEffectResult(name="calendar", ok=True, skipped=True, reason=e.detail)
            if not token:
                return SideEffectResult(name="calendar", ok=True, skipped=True, reason="no access token")

            event = await self.calendar.create_event(
                token,
                CalendarEventRequest(
                    attendee_name=details.client_name,
                    date=details.date,
                    time=details.time,
                    duration_minutes=details.duration,
                    attendee_email=details.client_email,
                    owner_email=details.owner_email,
                    description=build_event_description(details.client_name, details.profile_url, answers),
                ),
            )
            logger.info(f"Calendar event {event.event_id} created for meeting {meeting.id}")
            return None

        async def notify_owner() -> Optional[SideEffectResult]:
            if self.notifier is None:
                return SideEffectResult(name="notification", ok=True, skipped=True, reason="no notifier")
            await self.notifier.notify_owner(details)
            return None

        return list(
            await asyncio.gather(
                run_side_effect("calendar", sync_calendar, self.side_effect_timeout, context),
                run_side_effect("notification", notify_owner, self.side_effect_timeout, context),
            )
        )

    def list_meetings(self, link_id: str, owner: User) -> list[Meeting]:
        """Meetings booked on one of `owner`'s links, newest date first"""
        link = self.links.get_link_by_id(self.db, link_id)
        if not link or link.user_id != owner.id:
            raise NotFoundError("Scheduling link not found")
        return self.repo.get_meetings_for_link(self.db, link_id)

    def list_upcoming_meetings(self, owner: User, now: Optional[datetime] = None) -> list[Meeting]:
        """Future meetings across all of `owner`'s links in chronological order"""
        now = now or utcnow()
        meetings = self.repo.get_meetings_for_user(self.db, owner.id, from_date=now.date())
        upcoming = [m for m in meetings if meeting_start(m.date, m.time) > now]
        return sorted(upcoming, key=lambda m: meeting_start(m.date, m.time))
