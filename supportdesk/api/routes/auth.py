import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from supportdesk.api.dependencies import get_db
from supportdesk.api.security import get_current_user
from supportdesk.models.user import User
from supportdesk.schemas.auth_schema import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from supportdesk.services.auth_service import authenticate, create_access_token, hash_password, normalize_email


logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=201)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    email = normalize_email(request.email)
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(email=email, password_hash=hash_password(request.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, request.email, request.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return TokenResponse(access_token=create_access_token(subject=str(user.id)))


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return user
