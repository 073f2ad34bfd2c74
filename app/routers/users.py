# app/routers/users.py
"""Admin user management (primary store only)."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_hooks
from app.schemas.user import UserDetailOut, UserOut, UserSummaryOut, UserUpdate
from app.security import require_admin
from app.services import user_service
from app.services.hooks import PostCommitHooks

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/users", response_model=List[UserSummaryOut], summary="Admin — list users")
def list_users(db: Session = Depends(get_db)):
    return user_service.list_users_with_aggregates(db)


@router.get("/users/{user_id}", response_model=UserDetailOut, summary="Admin — user detail")
def get_user(user_id: int, db: Session = Depends(get_db)):
    return user_service.get_user_detail(db, user_id)


@router.put("/users/{user_id}", response_model=UserOut, summary="Admin — update a user")
def update_user(user_id: int, body: UserUpdate, db: Session = Depends(get_db),
                hooks: PostCommitHooks = Depends(get_hooks)):
    return user_service.update_user(db, hooks, user_id, body)


@router.delete("/users/{user_id}", summary="Admin — soft-delete a user")
def delete_user(user_id: int, db: Session = Depends(get_db),
                hooks: PostCommitHooks = Depends(get_hooks)):
    return user_service.soft_delete_user(db, hooks, user_id)
