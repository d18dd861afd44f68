"""Meeting repository - Database operations for bookings"""

from datetime import date
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, joinedload

from ...models import Meeting, SchedulingLink


class MeetingRepository:
    """Repository for meeting database operations"""

    @staticmethod
    def find_duplicate(
        db: Session, link_id: str, client_email: str, meeting_date: date, time: str
    ) -> Optional[Meeting]:
        """Same client, same link, same slot"""
        return (
            db.query(Meeting)
            .filter(
                Meeting.link_id == link_id,
                Meeting.client_email == client_email,
                Meeting.date == meeting_date,
                Meeting.time == time,
            )
            .first()
        )

    @staticmethod
    def find_by_client_and_date(
        db: Session, link_id: str, client_email: str, meeting_date: date
    ) -> Optional[Meeting]:
        return (
            db.query(Meeting)
            .filter(
                Meeting.link_id == link_id,
                Meeting.client_email == client_email,
                Meeting.date == meeting_date,
            )
            .first()
        )

    @staticmethod
    def create_meeting_claiming_use(db: Session, link_id: str, **meeting_data) -> Optional[Meeting]:
        """
        Insert a meeting and consume one use of its link in a single transaction.

        The conditional UPDATE only matches while the link is under its cap, so
        concurrent submissions cannot push the meeting count past max_uses.
        Returns None (with the transaction rolled back) when the cap is reached.
        IntegrityError from the insert propagates to the caller.
        """
        result = db.execute(
            update(SchedulingLink)
            .where(
                SchedulingLink.id == link_id,
                or_(
                    SchedulingLink.max_uses.is_(None),
                    SchedulingLink.uses_count < SchedulingLink.max_uses,
                ),
            )
            .values(uses_count=SchedulingLink.uses_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            return None

        meeting = Meeting(link_id=link_id, **meeting_data)
        db.add(meeting)
        db.commit()
        db.refresh(meeting)
        return meeting

    @staticmethod
    def get_meetings_for_link(db: Session, link_id: str) -> list[Meeting]:
        return (
            db.query(Meeting)
            .options(joinedload(Meeting.link))
            .filter(Meeting.link_id == link_id)
            .order_by(Meeting.date.desc())
            .all()
        )

    @staticmethod
    def get_meetings_for_user(db: Session, user_id: int, from_date: Optional[date] = None) -> list[Meeting]:
        query = (
            db.query(Meeting)
            .join(SchedulingLink, Meeting.link_id == SchedulingLink.id)
            .options(joinedload(Meeting.link))
            .filter(SchedulingLink.user_id == user_id)
        )
        if from_date:
            query = query.filter(Meeting.date >= from_date)
        return query.all()
