from typing import Any, Dict, Generic, Optional, Type, TypeVar
from sqlalchemy.orm import Session
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from pydantic import BaseModel
from app.database import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


def upsert_insert(db: Session, model):
    """
    Dialect-specific INSERT construct supporting ON CONFLICT clauses.

    PostgreSQL in production, SQLite in tests; both accept
    on_conflict_do_nothing / on_conflict_do_update with the same arguments.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Atomic upsert is not supported on {dialect}")


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Tenant-scoped CRUD shared by every per-tenant table.

    Each read filters on ``tenant_id``, so another tenant's row looks exactly
    like a missing one and callers answer 404 in both cases.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: int, tenant_id: int) -> Optional[ModelType]:
        stmt = select(self.model).where(
            self.model.id == id,
            self.model.tenant_id == tenant_id
        )
        return db.execute(stmt).scalar_one_or_none()

    def create(
        self,
        db: Session,
        *,
        obj_in: CreateSchemaType,
        tenant_id: int
    ) -> ModelType:
        db_obj = self.model(tenant_id=tenant_id, **obj_in.model_dump())
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | Dict[str, Any]
    ) -> ModelType:
        """
        Partial update of a row already loaded through ``get``.

        Fields left out of the schema, or sent as null, keep their value.
        """
        if isinstance(obj_in, dict):
            changes = obj_in
        else:
            changes = obj_in.model_dump(exclude_unset=True, exclude_none=True)

        for field, value in changes.items():
            setattr(db_obj, field, value)

        db.commit()
        db.refresh(db_obj)
        return db_obj

    def delete(self, db: Session, *, id: int, tenant_id: int) -> Optional[ModelType]:
        """Delete by id within the tenant. Returns None when nothing matched."""
        obj = self.get(db=db, id=id, tenant_id=tenant_id)
        if obj is not None:
            db.delete(obj)
            db.commit()
        return obj
