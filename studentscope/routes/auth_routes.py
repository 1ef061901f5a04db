import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studentscope.auth.authenticator import authenticate, get_user_by_username
from studentscope.auth.dependencies import get_current_session, get_session_store, read_session_token
from studentscope.auth.passwords import make_credential
from studentscope.auth.sessions import SessionInfo, SessionStore
from studentscope.core import config
from studentscope.core.errors import StorageError
from studentscope.database import get_db
from studentscope.models.password_reset import PasswordResetRequest

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

PASSWORD_RESET_ACK = 'If the account exists, a password reset request has been submitted for review.'


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator('username', 'password')
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('Username and password are required.')
        return value


class PasswordResetRequestBody(BaseModel):
    username: str
    new_password: str = Field(alias='newPassword')

    class Config:
        populate_by_name = True

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Username is required.')
        return normalized

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        if not value:
            raise ValueError('New password is required.')
        return value


def cookie_is_secure(request: Request) -> bool:
    if config.SESSION_COOKIE_SECURE in {'1', 'true', 'yes', 'on'}:
        return True
    if config.SESSION_COOKIE_SECURE in {'0', 'false', 'no', 'off'}:
        return False
    forwarded_proto = request.headers.get('x-forwarded-proto', '').split(',')[0].strip().lower()
    return request.url.scheme == 'https' or forwarded_proto == 'https'


def set_session_cookie(response: JSONResponse, request: Request, token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.SESSION_TTL_HOURS * 3600,
        path='/',
        secure=cookie_is_secure(request),
        httponly=True,
        samesite='Strict',
    )


def clear_session_cookie(response: JSONResponse, request: Request) -> None:
    response.delete_cookie(
        key=config.SESSION_COOKIE_NAME,
        path='/',
        secure=cookie_is_secure(request),
        httponly=True,
        samesite='Strict',
    )


@router.post('/login')
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    user = authenticate(db, payload.username, payload.password)
    if user is None:
        return JSONResponse(status_code=401, content={'error': 'Invalid credentials'})

    token = store.create(user)
    logger.info('User %s (%s) logged in', user.username, user.role)

    response = JSONResponse(
        content={'message': 'Login successful', 'role': user.role, 'username': user.username}
    )
    set_session_cookie(response, request, token)
    return response


@router.post('/logout')
def logout(request: Request, store: SessionStore = Depends(get_session_store)):
    store.destroy(read_session_token(request))

    response = JSONResponse(content={'message': 'Logout successful'})
    clear_session_cookie(response, request)
    return response


@router.get('/me')
def me(session: SessionInfo = Depends(get_current_session)):
    return {'username': session.username, 'role': session.role, 'userId': session.user_id}


@router.post('/request-password-reset')
def request_password_reset(payload: PasswordResetRequestBody, db: Session = Depends(get_db)):
    new_password, new_salt = make_credential(payload.new_password)
    user = get_user_by_username(db, payload.username)
    if user is None:
        logger.debug('Password reset requested for unknown username %r', payload.username)
        return {'message': PASSWORD_RESET_ACK}

    db.add(
        PasswordResetRequest(
            user_id=user.id,
            role=user.role,
            new_password=new_password,
            new_salt=new_salt,
        )
    )
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not store password reset request') from exc

    logger.info('Password reset requested for user %s', user.id)
    return {'message': PASSWORD_RESET_ACK}
