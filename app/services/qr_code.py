import uuid
from typing import List, Optional
from qrcode.exceptions import DataOverflowError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import DuplicateTableCodeError, QrCodeNotFoundError, TableCodeConflictError
from app.core.logging_config import logger
from app.crud.qr_code import qr_code as qr_code_crud
from app.crud.tenant import tenant as tenant_crud
from app.models.qr_code import QrCode
from app.services.storage import render_qr_png, storage as default_storage

TABLE_CLAIM_ATTEMPTS = 3


class QrCodeService:
    """
    Issues, resolves and removes QR codes.

    Table codes are issued with a conditional insert: whoever loses the race
    for a table gets the row the winner created.
    """

    def __init__(self, store=qr_code_crud, tenants=tenant_crud, storage=default_storage,
                 base_url: Optional[str] = None):
        self.store = store
        self.tenants = tenants
        self.storage = storage
        self.base_url = (base_url or settings.QR_BASE_URL).rstrip("/")

    def public_url_for(self, code: str) -> str:
        return f"{self.base_url}/{code}"

    def issue(self, db: Session, tenant_id: int, table_id: Optional[str] = None) -> QrCode:
        """
        Return the table's code, creating it on first request.

        Without a table_id a new code is created on every call.

        Raises:
            TableCodeConflictError: If the table's code belongs to another tenant
        """
        code = uuid.uuid4().hex
        public_url = self.public_url_for(code)

        if table_id is None:
            qr_code = self.store.create_untabled(db, tenant_id=tenant_id, code=code, public_url=public_url)
        else:
            qr_code = self._claim_table(db, tenant_id, table_id, code, public_url)
            if qr_code.code != code:
                return qr_code

        logger.info(f"QR code issued: id={qr_code.id}, tenant_id={tenant_id}, table_id={table_id}")
        return self._attach_image(db, qr_code)

    def _claim_table(self, db: Session, tenant_id: int, table_id: str, code: str, public_url: str) -> QrCode:
        """
        Insert the table's code, or return the row a concurrent request won.

        The winning row can be deleted before the loser reads it back; the
        insert is then retried.

        Raises:
            TableCodeConflictError: If the table's code belongs to another tenant
            QrCodeNotFoundError: If the table keeps changing hands
        """
        for _ in range(TABLE_CLAIM_ATTEMPTS):
            try:
                return self.store.create_for_table(
                    db,
                    tenant_id=tenant_id,
                    table_id=table_id,
                    code=code,
                    public_url=public_url,
                )
            except DuplicateTableCodeError:
                existing = self.store.get_by_table(db, table_id)
            if existing is not None:
                if existing.tenant_id != tenant_id:
                    raise TableCodeConflictError(table_id)
                return existing
            logger.warning(f"Table code vanished after a lost insert, retrying: table_id={table_id}")
        raise QrCodeNotFoundError()

    def _attach_image(self, db: Session, qr_code: QrCode) -> QrCode:
        """Render and store the printable image. The code works without it."""
        key = f"qr-codes/{qr_code.tenant_id}/{qr_code.code}.png"
        try:
            self.storage.save(key, render_qr_png(qr_code.public_url))
        except (OSError, ValueError, DataOverflowError):
            logger.exception(f"Failed to store QR image: qr_code_id={qr_code.id}")
            return qr_code
        return self.store.set_image_key(db, db_obj=qr_code, image_key=key)

    def resolve(self, db: Session, code: str) -> QrCode:
        """
        Look up a code for public resolution.

        Raises:
            QrCodeNotFoundError: If the code is unknown or its tenant is inactive
        """
        qr_code = self.store.get_by_code(db, code)
        if qr_code is None or not qr_code.tenant.is_active:
            raise QrCodeNotFoundError()
        return qr_code

    def get_qr_code(self, db: Session, qr_code_id: int, tenant_id: int) -> QrCode:
        qr_code = self.store.get(db=db, id=qr_code_id, tenant_id=tenant_id)
        if qr_code is None:
            raise QrCodeNotFoundError()
        return qr_code

    def get_qr_codes(self, db: Session, tenant_id: int) -> List[QrCode]:
        return self.store.get_multi_newest_first(db, tenant_id=tenant_id)

    def remove(self, db: Session, qr_code_id: int, tenant_id: int) -> None:
        """
        Delete a tenant's code and its scan log, then release the stored image.

        Releasing the image is best-effort; a failure there is logged and the
        deletion stands.

        Raises:
            QrCodeNotFoundError: If the code does not exist for this tenant
        """
        image_key = self.get_qr_code(db, qr_code_id, tenant_id).image_key

        deleted = self.store.delete(db=db, id=qr_code_id, tenant_id=tenant_id)
        if deleted is None:
            raise QrCodeNotFoundError()

        logger.info(f"QR code deleted: id={qr_code_id}, tenant_id={tenant_id}")
        if image_key:
            try:
                self.storage.delete(image_key)
            except (OSError, ValueError):
                logger.exception(f"Failed to release QR image: key={image_key}")


# Create a singleton instance
qr_code_service = QrCodeService()
