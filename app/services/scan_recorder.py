from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.orm import Session, sessionmaker
from app.core.logging_config import logger
from app.crud.qr_code import qr_code as qr_code_crud
from app.services.analytics import analytics_service
from app.utils.time import utcnow


class ScanRecorder:
    """
    Records public QR resolutions.

    One transaction increments the code's counter in SQL, appends the scan
    event and bumps the day's scan rollup, so scan_count always equals the
    number of scan events for the code.
    """

    def __init__(self, qr_codes=qr_code_crud, analytics=analytics_service,
                 clock: Callable[[], datetime] = utcnow):
        self.qr_codes = qr_codes
        self.analytics = analytics
        self.clock = clock

    def record(
        self,
        db: Session,
        qr_code_id: int,
        tenant_id: int,
        source_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Returns:
            False if the code was deleted before the scan could be recorded
        """
        now = now or self.clock()
        try:
            recorded = self.qr_codes.record_scan(
                db,
                qr_code_id=qr_code_id,
                tenant_id=tenant_id,
                scanned_at=now,
                source_address=source_address,
                user_agent=user_agent,
            )
            if not recorded:
                db.rollback()
                logger.warning(f"Scan for missing QR code dropped: qr_code_id={qr_code_id}")
                return False

            self.analytics.record_scan(db, tenant_id, now=now)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return True

    def record_detached(
        self,
        session_factory: sessionmaker,
        qr_code_id: int,
        tenant_id: int,
        source_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> None:
        """
        Background-task entry point. Runs after the response has been
        produced; failures are logged and never reach the caller.
        """
        db = session_factory()
        try:
            self.record(db, qr_code_id, tenant_id, source_address=source_address, user_agent=user_agent)
        except Exception:
            logger.exception(f"Failed to record QR scan: qr_code_id={qr_code_id}, tenant_id={tenant_id}")
        finally:
            db.close()


# Create a singleton instance
scan_recorder = ScanRecorder()
