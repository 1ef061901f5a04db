import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studentscope.auth.authenticator import change_password, get_user_by_id
from studentscope.auth.dependencies import get_current_session, get_session_store, read_session_token, role_required
from studentscope.auth.passwords import make_credential, verify_password
from studentscope.auth.sessions import SessionInfo, SessionStore
from studentscope.core.errors import InvalidSessionError, StorageError
from studentscope.database import get_db
from studentscope.models.user import User

router = APIRouter(tags=['profile'])

logger = logging.getLogger(__name__)

PIN_LENGTH = 4

clerk_only = role_required('clerk')


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(alias='oldPassword')
    new_password: str = Field(alias='newPassword')

    class Config:
        populate_by_name = True

    @field_validator('old_password', 'new_password')
    @classmethod
    def validate_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError('Old and new passwords are required.')
        return value


class PinRequest(BaseModel):
    pin: str

    @field_validator('pin', mode='before')
    @classmethod
    def coerce_pin(cls, value) -> str:
        return '' if value is None else str(value).strip()


def load_session_user(db: Session, session: SessionInfo) -> User:
    user = get_user_by_id(db, session.user_id)
    if user is None:
        raise InvalidSessionError('Session user no longer exists')
    return user


@router.post('/change-password')
def change_my_password(
    payload: ChangePasswordRequest,
    request: Request,
    session: SessionInfo = Depends(get_current_session),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    if not change_password(db, session.user_id, payload.old_password, payload.new_password):
        return JSONResponse(status_code=400, content={'error': 'Old password is incorrect'})

    store.destroy_all_for_user(session.user_id, keep_token=read_session_token(request))
    return {'message': 'Password changed successfully'}


@router.get('/pin')
def pin_status(session: SessionInfo = Depends(clerk_only), db: Session = Depends(get_db)):
    user = load_session_user(db, session)
    return {'hasPin': user.pin_hash is not None}


@router.post('/pin')
def set_pin(payload: PinRequest, session: SessionInfo = Depends(clerk_only), db: Session = Depends(get_db)):
    if len(payload.pin) != PIN_LENGTH or not payload.pin.isdigit():
        return JSONResponse(status_code=400, content={'error': 'Invalid PIN format. Must be 4 digits.'})

    user = load_session_user(db, session)
    user.pin_hash, user.pin_salt = make_credential(payload.pin)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not store PIN') from exc

    logger.info('PIN set for user %s', user.id)
    return {'message': 'PIN set successfully'}


@router.post('/pin/verify')
def verify_pin(payload: PinRequest, session: SessionInfo = Depends(clerk_only), db: Session = Depends(get_db)):
    user = load_session_user(db, session)
    if user.pin_hash is None:
        return JSONResponse(
            status_code=400,
            content={'error': 'No PIN set. Please set a PIN in your profile.'},
        )

    if not verify_password(payload.pin, user.pin_salt, user.pin_hash):
        return JSONResponse(status_code=401, content={'success': False, 'error': 'Incorrect PIN'})
    return {'success': True}
