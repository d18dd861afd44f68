"""
Legacy storage migration runner
Usage: advisorconnect-migrate <advisor_email> <local_storage_export.json>

The JSON file is an export of the browser's localStorage (key -> value).
Migrated keys are removed from the file once the run completes.
"""

import logging
import sys
from pathlib import Path

from .database import Base, SessionLocal, engine
from .domain.migration.service import MigrationService
from .domain.migration.storage import FileLegacyStorage
from .errors import AppError

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def run_migration(email: str, export_path: str) -> int:
    """Migrate one advisor's exported records; returns a process exit code"""
    path = Path(export_path)
    if not path.exists():
        logger.error(f"Export file not found: {path}")
        return 1

    Base.metadata.create_all(bind=engine, checkfirst=True)

    db = SessionLocal()
    try:
        report = MigrationService(db).migrate(email, FileLegacyStorage(path))
    except AppError as e:
        logger.error(f"Migration failed: {e.detail}")
        return 1
    finally:
        db.close()

    logger.info(f"Links created: {report.links_created}, already present: {report.links_skipped}")
    logger.info(f"Meetings created: {report.meetings_created}, skipped: {report.meetings_skipped}")
    if report.invalid_records:
        logger.warning(f"Invalid records skipped: {report.invalid_records}")
    if report.cleared:
        logger.info(f"Removed legacy keys: {', '.join(report.cleared_keys)}")
    else:
        logger.info("Nothing to migrate")
    return 0


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        logger.error("Usage: advisorconnect-migrate <advisor_email> <local_storage_export.json>")
        return 2
    return run_migration(args[0], args[1])


if __name__ == "__main__":
    sys.exit(main())
