from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from app.database import Base, TimestampMixin


class QrCode(Base, TimestampMixin):
    """
    Opaque token mapping to a tenant (and optionally a table).

    table_id is unique platform-wide: one code per physical table.
    """
    __tablename__ = "qr_code"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False, index=True)
    table_id = Column(String, unique=True, nullable=True)
    code = Column(String, unique=True, index=True, nullable=False)
    public_url = Column(String, nullable=False)
    image_key = Column(String, nullable=True)
    scan_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_scanned_at = Column(DateTime(timezone=True), nullable=True)

    tenant = relationship("Tenant", back_populates="qr_codes")
    scans = relationship("ScanEvent", back_populates="qr_code", cascade="all, delete-orphan", passive_deletes=True)


class ScanEvent(Base):
    """Append-only log of public QR resolutions."""
    __tablename__ = "scan_event"

    id = Column(Integer, primary_key=True, index=True)
    qr_code_id = Column(Integer, ForeignKey("qr_code.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(Integer, ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False, index=True)
    scanned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    source_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)

    qr_code = relationship("QrCode", back_populates="scans")
