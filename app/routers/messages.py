# app/routers/messages.py
"""Contact messages. Anyone may post; everything else is admin-only."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_hooks
from app.schemas.message import MessageCreate, MessageOut, MessageReply
from app.security import require_admin
from app.services import message_service
from app.services.hooks import PostCommitHooks

router = APIRouter()


@router.post("/messages", response_model=MessageOut, status_code=201, summary="Send a contact message")
def create_message(body: MessageCreate, db: Session = Depends(get_db),
                   hooks: PostCommitHooks = Depends(get_hooks)):
    return message_service.create_message(db, hooks, body)


@router.get("/messages", response_model=List[MessageOut], summary="Admin — list messages")
def list_messages(claims: dict = Depends(require_admin), db: Session = Depends(get_db)):
    return message_service.list_messages(db)


@router.get("/messages/{message_id}", response_model=MessageOut, summary="Admin — get a message")
def get_message(message_id: int, claims: dict = Depends(require_admin), db: Session = Depends(get_db)):
    return message_service.get_message(db, message_id)


@router.post("/messages/{message_id}/reply", response_model=MessageOut, summary="Admin — reply by email")
async def reply_message(message_id: int, body: MessageReply, claims: dict = Depends(require_admin),
                        db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    return await message_service.reply_to_message(db, hooks, message_id, body.reply)


@router.delete("/messages/{message_id}", summary="Admin — delete a message")
def delete_message(message_id: int, claims: dict = Depends(require_admin),
                   db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    return message_service.delete_message(db, hooks, message_id)
