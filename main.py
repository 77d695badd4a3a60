from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from app.core.config import settings
from app.routers import (
    admin,
    analytics,
    auth,
    memberships,
    menu,
    public,
    qr_codes,
    subscriptions,
    tenants,
    webhooks,
)
from app.core.logging_config import logger

# Schema is managed by Alembic migrations

app = FastAPI(
    title="QR Menu Platform API",
    version="1.0.0",
    redirect_slashes=False  # Disable automatic redirects to prevent POST data loss
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(tenants.router, prefix="/api/tenants", tags=["Tenants"])
app.include_router(memberships.router, prefix="/api/tenants/{tenant_id}/memberships", tags=["Memberships"])
app.include_router(subscriptions.router, prefix="/api/tenants/{tenant_id}/subscription", tags=["Subscriptions"])
app.include_router(menu.router, prefix="/api/tenants/{tenant_id}/menu", tags=["Menu"])
app.include_router(qr_codes.router, prefix="/api/tenants/{tenant_id}/qr-codes", tags=["QR Codes"])
app.include_router(analytics.router, prefix="/api/tenants/{tenant_id}/analytics", tags=["Analytics"])
app.include_router(public.router, prefix="/api/public", tags=["Public"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["Webhooks"])


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected"
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy"
        )
