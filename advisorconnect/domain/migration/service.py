"""Migration service - Moves legacy local records into the database"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import NotFoundError
from ...models import SchedulingLink, User
from ...shared.time_format import normalize_meeting_time, parse_instant, parse_meeting_date
from ...shared.validators import validate_required_email, validate_slug
from ..bookings.repository import MeetingRepository
from ..links.repository import LinkRepository
from ..links.service import normalize_questions
from ..users.repository import UserRepository
from .storage import LegacyStorage

logger = logging.getLogger(__name__)

# Older builds used the camelCase keys, later ones the snake_case keys
LINK_KEYS = ("schedulingLinks", "scheduling_links")
MEETING_KEYS = ("meetings", "scheduled_meetings")

DEFAULT_DURATION = 30


@dataclass
class MigrationReport:
    links_created: int = 0
    links_skipped: int = 0
    meetings_created: int = 0
    meetings_skipped: int = 0
    invalid_records: int = 0
    cleared_keys: list[str] = field(default_factory=list)

    @property
    def cleared(self) -> bool:
        return bool(self.cleared_keys)


def _owner_email(record: dict) -> Optional[str]:
    email = record.get("advisorEmail")
    if not email and isinstance(record.get("advisor"), dict):
        email = record["advisor"].get("email")
    return email.strip().lower() if isinstance(email, str) else None


def _optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def normalize_answers(answers) -> dict[str, str]:
    """Answers arrive as [{"questionId", "answer"}] or as a mapping"""
    if isinstance(answers, dict):
        return {str(k): str(v) for k, v in answers.items() if v is not None}
    if isinstance(answers, list):
        return {
            str(a["questionId"]): str(a.get("answer") or "")
            for a in answers
            if isinstance(a, dict) and a.get("questionId") is not None
        }
    return {}


class MigrationService:
    """Idempotent import of legacy links and meetings for one advisor"""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository()
        self.links = LinkRepository()
        self.meetings = MeetingRepository()

    def _read_records(self, storage: LegacyStorage, keys: tuple[str, ...]) -> tuple[list[dict], list[str]]:
        """Records under every present key, plus the keys that held them"""
        records, found = [], []
        for key in keys:
            value = storage.get(key)
            if value is None:
                continue
            if isinstance(value, str):
                value = json.loads(value) if value.strip() else []
            found.append(key)
            if isinstance(value, list):
                records.extend(r for r in value if isinstance(r, dict))
            else:
                logger.warning(f"Ignoring legacy key '{key}': expected a list, got {type(value).__name__}")
        return records, found

    def migrate(self, email: str, storage: Optional[LegacyStorage]) -> MigrationReport:
        """
        Copy the advisor's legacy links and meetings into the database.

        Links are matched on slug and meetings on (link, client email, date),
        so running this again creates nothing new. Every record is committed on
        its own; the legacy keys are removed only once the whole run finishes.
        """
        user = self.users.get_user_by_email(self.db, email)
        if not user:
            raise NotFoundError("User not found")

        report = MigrationReport()
        if storage is None:
            return report

        link_records, link_keys = self._read_records(storage, LINK_KEYS)
        meeting_records, meeting_keys = self._read_records(storage, MEETING_KEYS)
        if not link_keys and not meeting_keys:
            logger.info(f"No legacy data to migrate for {user.email}")
            return report

        # Legacy meetings may point at links by their local id instead of slug
        slug_by_legacy_id = {}
        for record in link_records:
            if _owner_email(record) != user.email:
                continue
            if record.get("id") and record.get("slug"):
                slug_by_legacy_id[str(record["id"])] = record["slug"]
            self._migrate_link(user, record, report)

        for record in meeting_records:
            self._migrate_meeting(user, record, slug_by_legacy_id, report)

        for key in link_keys + meeting_keys:
            storage.remove(key)
        report.cleared_keys = link_keys + meeting_keys

        logger.info(
            f"Migration for {user.email}: {report.links_created} links and "
            f"{report.meetings_created} meetings created, {report.links_skipped} links and "
            f"{report.meetings_skipped} meetings already present, {report.invalid_records} invalid"
        )
        return report

    def _migrate_link(self, user: User, record: dict, report: MigrationReport) -> None:
        try:
            slug = validate_slug(str(record.get("slug") or ""))
            link_data = {
                "name": str(record.get("name") or slug).strip(),
                "slug": slug,
                "duration": _optional_int(record.get("duration")) or DEFAULT_DURATION,
                "max_advance_days": _optional_int(record.get("maxAdvanceDays")),
                "max_uses": _optional_int(record.get("maxUses")),
                "expiration_date": parse_instant(record.get("expirationDate")),
                "custom_questions": normalize_questions(record.get("customQuestions")),
            }
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping invalid legacy link {record.get('slug')!r}: {e}")
            report.invalid_records += 1
            return

        if self.links.slug_exists(self.db, slug):
            report.links_skipped += 1
            return

        try:
            self.links.create_link(self.db, user.id, **link_data)
        except IntegrityError:
            self.db.rollback()
            report.links_skipped += 1
            return
        report.links_created += 1

    def _resolve_link(self, user: User, record: dict, slug_by_legacy_id: dict) -> Optional[SchedulingLink]:
        slug = record.get("linkSlug") or slug_by_legacy_id.get(str(record.get("linkId")))
        if not slug:
            return None
        return self.links.get_link_by_slug_for_user(self.db, slug, user.id)

    def _migrate_meeting(
        self, user: User, record: dict, slug_by_legacy_id: dict[str, str], report: MigrationReport
    ) -> None:
        link = self._resolve_link(user, record, slug_by_legacy_id)
        if link is None:
            report.meetings_skipped += 1
            return

        try:
            raw_email = record.get("clientEmail")
            client_email = validate_required_email(str(raw_email) if raw_email else None)
            meeting_data: dict[str, Any] = {
                "client_name": str(record.get("clientName") or client_email).strip(),
                "client_email": client_email,
                "profile_url": record.get("profileUrl") or record.get("linkedin") or None,
                "date": parse_meeting_date(record.get("date")),
                "time": normalize_meeting_time(record.get("time")),
                "duration": _optional_int(record.get("duration")) or link.duration,
                "notes": record.get("notes"),
                "answers": normalize_answers(record.get("answers")),
            }
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping invalid legacy meeting on link {link.slug}: {e}")
            report.invalid_records += 1
            return

        if self.meetings.find_by_client_and_date(self.db, link.id, client_email, meeting_data["date"]):
            report.meetings_skipped += 1
            return

        try:
            meeting = self.meetings.create_meeting_claiming_use(self.db, link.id, **meeting_data)
        except IntegrityError:
            self.db.rollback()
            report.meetings_skipped += 1
            return

        if meeting is None:
            logger.warning(f"Link {link.slug} is at its use cap; legacy meeting for {client_email} not migrated")
            report.meetings_skipped += 1
            return
        report.meetings_created += 1
