from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import select, update, func
from app.crud.base import CRUDBase, upsert_insert
from app.core.exceptions import DuplicateTableCodeError
from app.models.qr_code import QrCode, ScanEvent
from app.schemas.qr_code import QrCodeCreate, QrCodeUpdate


class CRUDQrCode(CRUDBase[QrCode, QrCodeCreate, QrCodeUpdate]):
    """CRUD operations for QR codes and their scan log."""

    def get_by_code(self, db: Session, code: str) -> Optional[QrCode]:
        stmt = select(QrCode).where(QrCode.code == code)
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get_by_table(self, db: Session, table_id: str) -> Optional[QrCode]:
        stmt = select(QrCode).where(QrCode.table_id == table_id).execution_options(populate_existing=True)
        result = db.execute(stmt)
        return result.scalar_one_or_none()

    def get_multi_newest_first(self, db: Session, *, tenant_id: int) -> List[QrCode]:
        stmt = select(QrCode).where(
            QrCode.tenant_id == tenant_id
        ).order_by(QrCode.created_at.desc(), QrCode.id.desc())
        return list(db.execute(stmt).scalars().all())

    def create_for_table(
        self,
        db: Session,
        *,
        tenant_id: int,
        table_id: str,
        code: str,
        public_url: str
    ) -> QrCode:
        """
        Insert a code for a table unless the table already has one.

        Uses INSERT ... ON CONFLICT (table_id) DO NOTHING so two concurrent
        first requests for the same table cannot both create a row.

        Raises:
            DuplicateTableCodeError: If another request already holds the table
        """
        stmt = upsert_insert(db, QrCode).values(
            tenant_id=tenant_id,
            table_id=table_id,
            code=code,
            public_url=public_url,
            scan_count=0,
        ).on_conflict_do_nothing(index_elements=["table_id"])

        result = db.execute(stmt)
        db.commit()

        if result.rowcount == 0:
            raise DuplicateTableCodeError(table_id)

        return self.get_by_table(db, table_id)

    def create_untabled(
        self,
        db: Session,
        *,
        tenant_id: int,
        code: str,
        public_url: str
    ) -> QrCode:
        db_obj = QrCode(tenant_id=tenant_id, code=code, public_url=public_url, scan_count=0)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def set_image_key(self, db: Session, *, db_obj: QrCode, image_key: str) -> QrCode:
        return self.update(db, db_obj=db_obj, obj_in=QrCodeUpdate(image_key=image_key))

    def record_scan(
        self,
        db: Session,
        *,
        qr_code_id: int,
        tenant_id: int,
        scanned_at: datetime,
        source_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> bool:
        """
        Increment the counter and append the scan event. Does NOT commit.

        The counter is incremented in SQL (scan_count = scan_count + 1) so
        concurrent scans of the same code cannot lose updates.

        Returns:
            False if the QR code no longer exists
        """
        stmt = update(QrCode).where(QrCode.id == qr_code_id).values(
            scan_count=QrCode.scan_count + 1,
            last_scanned_at=scanned_at,
        )
        result = db.execute(stmt)
        if result.rowcount == 0:
            return False

        db.add(ScanEvent(
            qr_code_id=qr_code_id,
            tenant_id=tenant_id,
            scanned_at=scanned_at,
            source_address=source_address,
            user_agent=user_agent,
        ))
        db.flush()
        return True

    def count_scan_events(self, db: Session, *, qr_code_id: int) -> int:
        stmt = select(func.count()).select_from(ScanEvent).where(ScanEvent.qr_code_id == qr_code_id)
        return db.execute(stmt).scalar_one()

    def scans_by_code(
        self,
        db: Session,
        *,
        tenant_id: int,
        start: datetime,
        end: datetime
    ) -> List[Tuple[str, int]]:
        """Scan events in [start, end] grouped by QR code, busiest first."""
        stmt = select(QrCode.code, func.count(ScanEvent.id)).join(
            QrCode, ScanEvent.qr_code_id == QrCode.id
        ).where(
            ScanEvent.tenant_id == tenant_id,
            ScanEvent.scanned_at >= start,
            ScanEvent.scanned_at <= end,
        ).group_by(QrCode.code).order_by(func.count(ScanEvent.id).desc(), QrCode.code)
        return [(row[0], row[1]) for row in db.execute(stmt).all()]


# Create singleton instance
qr_code = CRUDQrCode(QrCode)
