from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_password_setup_user
from app.core.security import verify_password, create_access_token, create_password_setup_token
from app.core.logging_config import logger
from app.crud.user import user as user_crud
from app.models.user import User, UserRole
from app.schemas.user import (
    LoginRequest,
    RegisterRequest,
    SetPasswordRequest,
    TokenResponse,
    UserResponse,
)

router = APIRouter()

SELF_SERVICE_ROLES = (UserRole.OWNER, UserRole.MANAGER)


def _claims(user: User) -> dict:
    return {"id": str(user.id), "phone": user.phone, "role": user.role.value}


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Create an account and sign it in.

    Raises:
        HTTPException 400: If the requested role cannot be self-assigned
        HTTPException 409: If the phone number is already registered
    """
    if data.role not in SELF_SERVICE_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Role cannot be self-assigned"
        )

    try:
        user = user_crud.create(
            db,
            phone=data.phone,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info(f"User registered: id={user.id}, role={user.role.value}")
    return TokenResponse(
        user=UserResponse.model_validate(user),
        access_token=create_access_token(data=_claims(user)),
    )


@router.post("/login", response_model=TokenResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """
    Exchange phone and password for an access token.

    Accounts created on someone's behalf may sign in once without a
    password. They receive a short-lived password-setup token that only
    /set-password accepts, and requires_password_setup is set in the
    response.

    Raises:
        HTTPException 401: If the credentials are invalid
    """
    user = user_crud.get_by_phone(db, phone=credentials.phone)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if credentials.password is None:
        if not user.requires_password_change:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
            )
        logger.info(f"Password-less setup login: user_id={user.id}")
        return TokenResponse(
            user=UserResponse.model_validate(user),
            access_token=create_password_setup_token(data=_claims(user)),
            requires_password_setup=True,
        )

    if not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    return TokenResponse(
        user=UserResponse.model_validate(user),
        access_token=create_access_token(data=_claims(user)),
        requires_password_setup=user.requires_password_change,
    )


@router.post("/set-password", response_model=TokenResponse)
def set_password(
    data: SetPasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_password_setup_user)
):
    """
    Set the first password of an account created on someone's behalf.

    Requires a password-setup token. Returns a regular access token.
    """
    if data.password != data.confirm_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match"
        )

    user = user_crud.set_password(db, db_user=current_user, password=data.password)
    logger.info(f"Password set: user_id={user.id}")
    return TokenResponse(
        user=UserResponse.model_validate(user),
        access_token=create_access_token(data=_claims(user)),
    )
