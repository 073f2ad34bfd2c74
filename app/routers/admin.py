# app/routers/admin.py
"""Admin password login and profile."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.auth import AdminAuthOut, AdminLogin, AdminOut
from app.security import require_admin
from app.services import auth_service

router = APIRouter()


@router.post("/admin/login", response_model=AdminAuthOut, summary="Admin login")
def admin_login(body: AdminLogin, db: Session = Depends(get_db)):
    return auth_service.authenticate_admin(db, body.email, body.password)


@router.get("/admin/me", response_model=AdminOut, summary="Current admin")
def admin_me(claims: dict = Depends(require_admin), db: Session = Depends(get_db)):
    return auth_service.get_admin(db, claims["id"])
