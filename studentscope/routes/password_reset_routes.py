import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studentscope.auth.dependencies import get_session_store, role_required
from studentscope.auth.sessions import SessionInfo, SessionStore
from studentscope.core.errors import ForbiddenError, StorageError
from studentscope.database import get_db, utcnow
from studentscope.models.password_reset import APPROVED, PENDING, REJECTED, PasswordResetRequest
from studentscope.models.user import User

router = APIRouter(tags=['password-resets'])

logger = logging.getLogger(__name__)

reviewer_required = role_required('admin', 'teacher')

# Roles whose reset requests each reviewing role may act on; None means all.
REVIEWABLE_ROLES = {
    'admin': None,
    'teacher': {'student'},
}


def can_review(reviewer_role: str, requester_role: str) -> bool:
    if reviewer_role not in REVIEWABLE_ROLES:
        return False
    allowed = REVIEWABLE_ROLES[reviewer_role]
    return allowed is None or requester_role in allowed


def serialize_reset(reset: PasswordResetRequest, username: str) -> dict:
    return {
        'id': reset.id,
        'userId': reset.user_id,
        'role': reset.role,
        'username': username,
        'createdAt': reset.created_at.isoformat() if reset.created_at else None,
    }


def load_pending_reset(db: Session, reset_id: int, reviewer: SessionInfo) -> PasswordResetRequest | None:
    try:
        reset = (
            db.query(PasswordResetRequest)
            .filter(PasswordResetRequest.id == reset_id, PasswordResetRequest.status == PENDING)
            .first()
        )
    except SQLAlchemyError as exc:
        raise StorageError('Password reset lookup failed') from exc

    if reset is not None and not can_review(reviewer.role, reset.role):
        raise ForbiddenError(f'{reviewer.role} cannot review {reset.role} password resets')
    return reset


def mark_reviewed(db: Session, reset: PasswordResetRequest, status: str, reviewer: SessionInfo) -> None:
    reset.status = status
    reset.reviewed_by = reviewer.user_id
    reset.reviewed_at = utcnow()
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Could not update password reset request') from exc


@router.get('/pending')
def list_pending_resets(reviewer: SessionInfo = Depends(reviewer_required), db: Session = Depends(get_db)):
    query = (
        db.query(PasswordResetRequest, User.username)
        .join(User, User.id == PasswordResetRequest.user_id)
        .filter(PasswordResetRequest.status == PENDING)
    )
    allowed = REVIEWABLE_ROLES.get(reviewer.role)
    if allowed is not None:
        query = query.filter(PasswordResetRequest.role.in_(sorted(allowed)))

    try:
        rows = query.order_by(PasswordResetRequest.created_at.desc(), PasswordResetRequest.id.desc()).all()
    except SQLAlchemyError as exc:
        raise StorageError('Could not list password reset requests') from exc
    return [serialize_reset(reset, username) for reset, username in rows]


@router.post('/{reset_id}/approve')
def approve_reset(
    reset_id: int,
    reviewer: SessionInfo = Depends(reviewer_required),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    reset = load_pending_reset(db, reset_id, reviewer)
    if reset is None:
        return JSONResponse(status_code=404, content={'error': 'Reset request not found'})

    user = db.get(User, reset.user_id)
    if user is not None:
        user.password = reset.new_password
        user.salt = reset.new_salt
    mark_reviewed(db, reset, APPROVED, reviewer)
    store.destroy_all_for_user(reset.user_id)

    logger.info('Password reset %s approved by user %s', reset.id, reviewer.user_id)
    return {'message': 'Password reset approved'}


@router.post('/{reset_id}/reject')
def reject_reset(
    reset_id: int,
    reviewer: SessionInfo = Depends(reviewer_required),
    db: Session = Depends(get_db),
):
    reset = load_pending_reset(db, reset_id, reviewer)
    if reset is None:
        return JSONResponse(status_code=404, content={'error': 'Reset request not found'})

    mark_reviewed(db, reset, REJECTED, reviewer)

    logger.info('Password reset %s rejected by user %s', reset.id, reviewer.user_id)
    return {'message': 'Password reset rejected'}
