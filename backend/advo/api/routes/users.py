import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from advo import crud
from advo.api.deps import CurrentUser, get_db
from advo.models import Message, User, UserProfilePublic, UserProfileUpdate, UserRole

router = APIRouter(prefix="/users", tags=["users"])


def _profile(user: User) -> UserProfilePublic:
    return UserProfilePublic.model_validate(
        user, update={"favorites": [fav.resource_id for fav in user.favorites]}
    )


@router.get("/me", response_model=UserProfilePublic)
def read_user_me(current_user: CurrentUser) -> Any:
    """
    Get current user.
    """
    return _profile(current_user)


@router.get("/{user_id}", response_model=UserProfilePublic)
def read_user_by_id(
    user_id: uuid.UUID, session: Session = Depends(get_db), current_user: CurrentUser = None
) -> Any:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _profile(user)


@router.put("/{user_id}", response_model=UserProfilePublic)
def update_user_profile(
    *,
    session: Session = Depends(get_db),
    current_user: CurrentUser,
    user_id: uuid.UUID,
    profile_in: UserProfileUpdate,
) -> Any:
    """
    Update a profile. Callers may edit their own; admins may edit anyone's.
    """
    if current_user.id != user_id and current_user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Not enough permissions")
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    user = crud.update_user_profile(session=session, db_user=user, profile_in=profile_in)
    return _profile(user)


@router.delete("/{user_id}")
def delete_user(
    user_id: uuid.UUID, session: Session = Depends(get_db), current_user: CurrentUser = None
) -> Message:
    if current_user.id != user_id:
        raise HTTPException(status_code=403, detail="You can only delete your own account")
    crud.delete_user(session=session, db_user=current_user)
    return Message(message="User deleted successfully")
