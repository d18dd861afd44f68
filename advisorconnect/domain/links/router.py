"""Link router - FastAPI endpoints for scheduling links"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import SchedulingLink, User
from ...shared.time_format import utcnow
from .schemas import CustomQuestion, LinkCreate, LinkResponse, OwnerResponse
from .service import LinkService, evaluate_link_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/links", tags=["Links"])


def get_link_service(db: Session = Depends(get_db)) -> LinkService:
    """Dependency injection for LinkService"""
    return LinkService(db)


def link_response(link: SchedulingLink, meetings_count: int) -> LinkResponse:
    return LinkResponse(
        id=link.id,
        name=link.name,
        slug=link.slug,
        duration=link.duration,
        maxAdvanceDays=link.max_advance_days,
        maxUses=link.max_uses,
        expirationDate=link.expiration_date,
        customQuestions=[CustomQuestion(**q) for q in link.custom_questions or []],
        createdAt=link.created_at,
        user=OwnerResponse(name=link.user.name, email=link.user.email, image=link.user.image),
        meetingsCount=meetings_count,
        status=evaluate_link_status(link, meetings_count, utcnow()).value,
    )


@router.get("", response_model=list[LinkResponse])
async def get_links(
    current_user: User = Depends(get_current_user),
    service: LinkService = Depends(get_link_service),
):
    """Get all links owned by the current advisor"""
    return [link_response(link, count) for link, count in service.list_links(current_user)]


@router.post("", response_model=LinkResponse)
async def create_link(
    data: LinkCreate,
    current_user: User = Depends(get_current_user),
    service: LinkService = Depends(get_link_service),
):
    """Create a new scheduling link"""
    link = service.create_link(current_user.email, data, current_user.name, current_user.image)
    return link_response(link, 0)


@router.get("/{slug}", response_model=LinkResponse)
async def get_link_by_slug(slug: str, service: LinkService = Depends(get_link_service)):
    """Public lookup used by the booking page"""
    link = service.resolve_link_for_booking(slug)
    return link_response(link, service.repo.count_meetings(service.db, link.id))
