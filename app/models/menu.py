from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from app.database import Base, TimestampMixin, JSONType


class Category(Base, TimestampMixin):
    __tablename__ = "category"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    name_translations = Column(JSONType, nullable=True)  # {language: name}
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    tenant = relationship("Tenant", back_populates="categories")
    items = relationship(
        "MenuItem", back_populates="category", cascade="all, delete-orphan",
        order_by="MenuItem.display_order",
    )


class MenuItem(Base, TimestampMixin):
    __tablename__ = "menu_item"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("category.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    name_translations = Column(JSONType, nullable=True)
    description_translations = Column(JSONType, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    image = Column(String, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=True)

    category = relationship("Category", back_populates="items")
