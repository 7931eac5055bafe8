import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.auth import jwt_handler
from thinkable.auth.dependencies import get_current_user
from thinkable.auth.passwords import hash_password, verify_password
from thinkable.database import get_db
from thinkable.models.user import ROLES, User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services.assessment_service import AGE_RANGES

router = APIRouter(tags=['auth'])
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
SELF_REGISTER_ROLES = ('STUDENT', 'TUTOR')


def _normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if '@' not in normalized or normalized.startswith('@') or normalized.endswith('@'):
        raise ValueError('A valid email address is required.')
    return normalized


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str | None = None
    role: str = 'STUDENT'
    age_range: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')
        return value

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in SELF_REGISTER_ROLES:
            raise ValueError('Role must be STUDENT or TUTOR.')
        return normalized

    @field_validator('age_range')
    @classmethod
    def validate_age_range(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        normalized = value.strip()
        if normalized not in AGE_RANGES:
            raise ValueError(f"Age range must be one of: {', '.join(AGE_RANGES)}.")
        return normalized


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)


class UserResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    role: str
    recommended_preset: str | None = None
    age_range: str | None = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    user: UserResponse


def _token_response(user: User) -> TokenResponse:
    token = jwt_handler.create_access_token(subject=user.email, role=user.role)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post('/register', response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        if db.query(User).filter(User.email == data.email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='An account with this email already exists.',
            )

        user = User(
            email=data.email,
            name=data.name.strip() if data.name else None,
            hashed_password=hash_password(data.password),
            role=data.role,
            age_range=data.age_range,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    logger.info('Registered %s user %s', user.role, user.id)
    return _token_response(user)


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        user = db.query(User).filter(User.email == data.email).first()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if user is None or not verify_password(data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid email or password.',
        )

    return _token_response(user)


@router.post('/logout')
def logout(current_user: User = Depends(get_current_user)):
    # Tokens are not tracked server side; the client discards its copy.
    return {'message': 'Logged out', 'email': current_user.email}


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get('/roles')
def list_roles():
    return {'roles': list(ROLES)}
