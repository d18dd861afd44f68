"""Migration router - one-time import of browser-local data"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...errors import AppError
from ...models import User
from .schemas import MigrationReportResponse, MigrationRequest, MigrationResponse
from .service import MigrationService
from .storage import InMemoryLegacyStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/migrate", tags=["Migration"])


def get_migration_service(db: Session = Depends(get_db)) -> MigrationService:
    """Dependency injection for MigrationService"""
    return MigrationService(db)


@router.post("", response_model=MigrationResponse)
async def migrate_local_storage(
    data: MigrationRequest,
    current_user: User = Depends(get_current_user),
    service: MigrationService = Depends(get_migration_service),
):
    """
    Import the signed-in advisor's legacy localStorage records.

    Safe to call on every sign-in; the response tells the client which local
    keys it may now delete.
    """
    if data.email != current_user.email:
        raise HTTPException(status_code=403, detail="Can only migrate data for the signed-in user")

    storage = InMemoryLegacyStorage(data.storage)
    try:
        report = service.migrate(data.email, storage)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Migration error for {data.email}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Migration failed") from e

    return MigrationResponse(
        success=True,
        cleared=report.cleared,
        clearedKeys=report.cleared_keys,
        report=MigrationReportResponse(
            linksCreated=report.links_created,
            linksSkipped=report.links_skipped,
            meetingsCreated=report.meetings_created,
            meetingsSkipped=report.meetings_skipped,
            invalidRecords=report.invalid_records,
        ),
    )
