import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import schemas, models
from ..config import settings
from ..deps import (
    get_db,
    get_password_hash,
    authenticate_user,
    create_access_token,
    get_current_user,
    require_roles,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=schemas.UserOut)
def register_user(
    user_in: schemas.UserCreate,
    db: Session = Depends(get_db),
    x_admin_secret: Optional[str] = Header(default=None),
):
    """
    Register a new user.

    Creates an account with the given role (``student``, ``faculty`` or
    ``admin``). Username and email must be unique. Admin accounts need the
    configured ``ADMIN_SECRET`` in the ``X-Admin-Secret`` header.

    Raises
    ------
    HTTPException
        - 400 if the username or email already exists.
        - 403 if an admin account is requested without the admin secret.
    """
    if user_in.role == schemas.UserRole.ADMIN and not _admin_secret_ok(x_admin_secret):
        raise HTTPException(status_code=403, detail="Invalid admin secret")

    email = user_in.email.lower().strip()
    existing = db.query(models.User).filter(
        (models.User.username == user_in.username) | (models.User.email == email)
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Username or email already exists")

    user = models.User(
        name=user_in.name,
        username=user_in.username,
        email=email,
        hashed_password=get_password_hash(user_in.password),
        role=user_in.role.value,
        student_id=user_in.student_id,
        department=user_in.department,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.post("/login", response_model=schemas.Token, tags=["auth"], include_in_schema=False)
def login_for_access_token(
    username: str,
    password: str,
    db: Session = Depends(get_db),
):
    """
    Authenticate a user and return a JWT access token.

    Raises
    ------
    HTTPException
        - 401 if credentials are invalid or the account is deactivated.
    """
    user = authenticate_user(db, username, password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )
    token = create_access_token({"sub": user.username, "role": user.role})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=schemas.UserOut)
def read_current_user(current_user: models.User = Depends(get_current_user)):
    """Profile of the user behind the Bearer token."""
    return current_user


@router.patch("/me", response_model=schemas.UserOut)
def update_current_user(
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Update the name, student id or department of the current user.
    Role and email cannot be changed here.
    """
    data = user_update.model_dump(exclude_unset=True)
    for field, value in data.items():
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("/", response_model=List[schemas.UserOut])
def list_users(
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles("admin")),
):
    """
    List all registered users. *(Admin-only)*
    """
    return db.query(models.User).order_by(models.User.id).all()


def _admin_secret_ok(supplied: Optional[str]) -> bool:
    # no configured secret means admin self-registration is closed
    if not settings.admin_secret or supplied is None:
        return False
    return secrets.compare_digest(supplied, settings.admin_secret)
