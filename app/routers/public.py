from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session, sessionmaker
from app.database import get_db, get_session_factory
from app.core.policies import subscription_gate
from app.core.tenant_context import tenant_resolver
from app.core.logging_config import logger
from app.schemas.analytics import MenuViewRequest
from app.schemas.menu import PublicMenuResponse
from app.schemas.qr_code import QrResolutionResponse
from app.services.analytics import analytics_service
from app.services.menu import menu_service
from app.services.qr_code import qr_code_service
from app.services.scan_recorder import scan_recorder

router = APIRouter()


def client_address(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For when behind a proxy, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.get("/qr-codes/{code}", response_model=QrResolutionResponse)
def resolve_qr_code(
    code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory)
):
    """
    Resolve a scanned QR code to its tenant and table.

    No authentication. The scan is recorded after the response is produced,
    in its own session; a recording failure never affects the visitor.

    Raises:
        HTTPException 404: If the code is unknown or its tenant is inactive
    """
    qr_code = qr_code_service.resolve(db, code)
    tenant = qr_code.tenant

    background_tasks.add_task(
        scan_recorder.record_detached,
        session_factory,
        qr_code.id,
        tenant.id,
        source_address=client_address(request),
        user_agent=request.headers.get("user-agent"),
    )

    return QrResolutionResponse(
        code=qr_code.code,
        tenant_id=tenant.id,
        tenant_name=tenant.name,
        tenant_slug=tenant.slug,
        table_id=qr_code.table_id,
        menu_url=f"/api/public/menus/{tenant.id}",
    )


@router.get("/menus/{tenant_id}", response_model=PublicMenuResponse)
def get_public_menu(
    tenant_id: int,
    background_tasks: BackgroundTasks,
    lang: Optional[str] = None,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory)
):
    """
    Public menu for visitors, in the requested language.

    Served only while the tenant's subscription is active and unexpired.

    Raises:
        HTTPException 404: If the tenant does not exist or is inactive
        HTTPException 403: If the subscription gate denies the tenant
    """
    tenant = tenant_resolver.load(db, tenant_id)
    subscription_gate.check(db, tenant.id)

    menu = menu_service.get_public_menu(db, tenant.id, language=lang)
    background_tasks.add_task(analytics_service.record_view_detached, session_factory, tenant.id)
    return menu


@router.post("/menus/{tenant_id}/views", status_code=status.HTTP_202_ACCEPTED)
def record_menu_view(
    tenant_id: int,
    view: MenuViewRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory)
):
    """Count a view of a specific item or category on the public menu."""
    tenant = tenant_resolver.load(db, tenant_id)
    subscription_gate.check(db, tenant.id)

    logger.debug(f"Menu view accepted: tenant_id={tenant.id}, item_id={view.item_id}, category_id={view.category_id}")
    background_tasks.add_task(
        analytics_service.record_view_detached,
        session_factory,
        tenant.id,
        item_id=view.item_id,
        category_id=view.category_id,
    )
    return {"accepted": True}
