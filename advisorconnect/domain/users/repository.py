"""User repository - Database operations for advisors"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.strip().lower()).first()

    @staticmethod
    def get_or_create_user(
        db: Session, email: str, name: Optional[str] = None, image: Optional[str] = None
    ) -> User:
        """Users are created lazily on first sign-in or first link creation"""
        email = email.strip().lower()
        user = UserRepository.get_user_by_email(db, email)
        if user:
            return user

        user = User(email=email, name=name, image=image)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Created concurrently by another request
            db.rollback()
            return UserRepository.get_user_by_email(db, email)
        db.refresh(user)
        return user
