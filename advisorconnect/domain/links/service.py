"""Link service - Business logic for scheduling link lifecycle"""

import enum
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import ConflictError, NotFoundError
from ...models import SchedulingLink, User
from ...shared.time_format import utcnow
from ..users.repository import UserRepository
from .repository import LinkRepository
from .schemas import LinkCreate

logger = logging.getLogger(__name__)


class LinkStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    EXHAUSTED_USES = "exhausted_uses"


def evaluate_link_status(link: SchedulingLink, current_meeting_count: int, now: datetime) -> LinkStatus:
    """
    Derive whether a link can take bookings.

    A link is bookable while it has no expiration or the expiration is still
    ahead of `now`, and it has no use cap or fewer meetings than the cap.
    Expiry is reported first when both conditions fail.
    """
    if link.expiration_date is not None and link.expiration_date <= now:
        return LinkStatus.EXPIRED
    if link.max_uses is not None and current_meeting_count >= link.max_uses:
        return LinkStatus.EXHAUSTED_USES
    return LinkStatus.ACTIVE


def normalize_questions(questions) -> list[dict]:
    """Canonical ordered [{"id", "text"}] list; anything else becomes empty"""
    if not isinstance(questions, list):
        return []
    normalized = []
    for question in questions:
        if hasattr(question, "model_dump"):
            question = question.model_dump()
        if isinstance(question, dict) and question.get("id") is not None and question.get("text"):
            normalized.append({"id": str(question["id"]), "text": str(question["text"])})
    return normalized


class LinkService:
    """Service layer for scheduling link business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LinkRepository()
        self.users = UserRepository()

    def create_link(
        self,
        owner_email: str,
        data: LinkCreate,
        owner_name: Optional[str] = None,
        owner_image: Optional[str] = None,
    ) -> SchedulingLink:
        """Create a link for `owner_email`, creating the user on first use"""
        user = self.users.get_or_create_user(self.db, owner_email, owner_name, owner_image)

        if self.repo.slug_exists(self.db, data.slug):
            logger.warning(f"Slug already taken: {data.slug}")
            raise ConflictError("Slug already taken", errors={"slug": "Slug already taken"})

        link_data = {
            "name": data.name.strip(),
            "slug": data.slug,
            "duration": data.duration,
            "max_advance_days": data.maxAdvanceDays,
            "max_uses": data.maxUses,
            "expiration_date": data.expirationDate,
            "custom_questions": normalize_questions(data.customQuestions),
        }
        try:
            link = self.repo.create_link(self.db, user.id, **link_data)
        except IntegrityError as e:
            # Lost a race on the unique slug index
            self.db.rollback()
            raise ConflictError("Slug already taken", errors={"slug": "Slug already taken"}) from e

        logger.info(f"Created scheduling link '{link.slug}' for {user.email}")
        return link

    def resolve_link_for_booking(self, slug: str) -> SchedulingLink:
        """Look a link up by slug; no expiry or usage checks happen here"""
        link = self.repo.get_link_by_slug(self.db, slug)
        if not link:
            raise NotFoundError("Scheduling link not found")
        return link

    def get_link(self, link_id: str) -> SchedulingLink:
        link = self.repo.get_link_by_id(self.db, link_id)
        if not link:
            raise NotFoundError("Scheduling link not found")
        return link

    def get_link_status(self, link: SchedulingLink, now: Optional[datetime] = None) -> LinkStatus:
        count = self.repo.count_meetings(self.db, link.id)
        return evaluate_link_status(link, count, now or utcnow())

    def list_links(self, user: User) -> list[tuple[SchedulingLink, int]]:
        """The user's links paired with their meeting counts"""
        links = self.repo.get_links_for_user(self.db, user.id)
        counts = self.repo.count_meetings_by_link(self.db, [link.id for link in links])
        return [(link, counts.get(link.id, 0)) for link in links]
