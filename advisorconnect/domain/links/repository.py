"""Link repository - Database operations for scheduling links"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Meeting, SchedulingLink


class LinkRepository:
    """Repository for scheduling link database operations"""

    @staticmethod
    def get_link_by_id(db: Session, link_id: str) -> Optional[SchedulingLink]:
        return (
            db.query(SchedulingLink)
            .options(joinedload(SchedulingLink.user))
            .filter(SchedulingLink.id == link_id)
            .first()
        )

    @staticmethod
    def get_link_by_slug(db: Session, slug: str) -> Optional[SchedulingLink]:
        return (
            db.query(SchedulingLink)
            .options(joinedload(SchedulingLink.user))
            .filter(SchedulingLink.slug == slug)
            .first()
        )

    @staticmethod
    def get_link_by_slug_for_user(db: Session, slug: str, user_id: int) -> Optional[SchedulingLink]:
        return (
            db.query(SchedulingLink)
            .filter(SchedulingLink.slug == slug, SchedulingLink.user_id == user_id)
            .first()
        )

    @staticmethod
    def slug_exists(db: Session, slug: str) -> bool:
        return db.query(SchedulingLink.id).filter(SchedulingLink.slug == slug).first() is not None

    @staticmethod
    def get_links_for_user(db: Session, user_id: int) -> list[SchedulingLink]:
        return (
            db.query(SchedulingLink)
            .options(joinedload(SchedulingLink.user))
            .filter(SchedulingLink.user_id == user_id)
            .order_by(SchedulingLink.created_at.desc())
            .all()
        )

    @staticmethod
    def count_meetings(db: Session, link_id: str) -> int:
        return db.query(func.count(Meeting.id)).filter(Meeting.link_id == link_id).scalar() or 0

    @staticmethod
    def count_meetings_by_link(db: Session, link_ids: list[str]) -> dict[str, int]:
        if not link_ids:
            return {}
        rows = (
            db.query(Meeting.link_id, func.count(Meeting.id))
            .filter(Meeting.link_id.in_(link_ids))
            .group_by(Meeting.link_id)
            .all()
        )
        return {link_id: count for link_id, count in rows}

    @staticmethod
    def create_link(db: Session, user_id: int, **link_data) -> SchedulingLink:
        """Create a new link; IntegrityError on a duplicate slug is left to the caller"""
        link = SchedulingLink(user_id=user_id, uses_count=0, **link_data)
        db.add(link)
        db.commit()
        db.refresh(link)
        return link
