# app/routers/payouts.py
"""
Host payout requests.
POST /payouts/request        — host asks to be paid for a booking
POST /payouts/{id}/approve   — admin
POST /payouts/{id}/reject    — admin
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_hooks
from app.schemas.payout import PayoutCreate, PayoutOut
from app.security import require_admin, require_auth
from app.services import payout_service
from app.services.hooks import PostCommitHooks

router = APIRouter()


@router.post("/payouts/request", response_model=PayoutOut, status_code=201, summary="Request a payout")
def request_payout(body: PayoutCreate, claims: dict = Depends(require_auth),
                   db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    return payout_service.request_payout(db, hooks, claims["id"], body)


@router.get("/payouts/mine", response_model=List[PayoutOut], summary="My payout requests")
def my_payouts(claims: dict = Depends(require_auth), db: Session = Depends(get_db)):
    return payout_service.list_for_host(db, claims["id"])


@router.get("/payouts", response_model=List[PayoutOut], summary="Admin — all payout requests")
def all_payouts(claims: dict = Depends(require_admin), db: Session = Depends(get_db)):
    return payout_service.list_all(db)


@router.post("/payouts/{payout_id}/approve", response_model=PayoutOut, summary="Admin — approve")
def approve(payout_id: int, claims: dict = Depends(require_admin),
            db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    return payout_service.approve_payout(db, hooks, payout_id)


@router.post("/payouts/{payout_id}/reject", response_model=PayoutOut, summary="Admin — reject")
def reject(payout_id: int, claims: dict = Depends(require_admin),
           db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    return payout_service.reject_payout(db, hooks, payout_id)
