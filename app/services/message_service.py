# app/services/message_service.py
"""Contact messages: public create, admin list/get/reply/delete."""

from sqlalchemy.orm import Session

from app.errors import NotFound
from app.models.message import Message
from app.schemas.message import MessageCreate, MessageOut
from app.services.hooks import PostCommitHooks
from app.services.mailer import send_reply_email
from app.services.mappers import message_from_row
from app.services.mirror_service import EntityKind
from app.utils.logger import get_logger
from app.utils.normalize import normalize_email

logger = get_logger(__name__)


def _get(db: Session, message_id: int) -> Message:
    msg = db.query(Message).filter(Message.id == message_id).first()
    if not msg:
        raise NotFound("Message not found", reason="message_not_found")
    return msg


def create_message(db: Session, hooks: PostCommitHooks, body: MessageCreate) -> MessageOut:
    msg = Message(name=body.name.strip(), email=normalize_email(body.email),
                  message=body.message.strip(), status="new")
    db.add(msg)
    db.commit()
    logger.info(f"[MESSAGES] New message {msg.id} from {msg.email}")
    hooks.mirror(EntityKind.MESSAGE, msg)
    return message_from_row(msg)


def list_messages(db: Session) -> list:
    return [message_from_row(m) for m in db.query(Message).order_by(Message.id.desc()).all()]


def get_message(db: Session, message_id: int) -> MessageOut:
    return message_from_row(_get(db, message_id))


async def reply_to_message(db: Session, hooks: PostCommitHooks, message_id: int, reply: str) -> MessageOut:
    """Email the reply, then mark the message replied. A failed send leaves it untouched."""
    msg = _get(db, message_id)
    await send_reply_email(msg.email, reply)
    msg.status = "replied"
    db.commit()
    hooks.mirror(EntityKind.MESSAGE, msg)
    return message_from_row(msg)


def delete_message(db: Session, hooks: PostCommitHooks, message_id: int) -> dict:
    msg = _get(db, message_id)
    db.delete(msg)
    db.commit()
    logger.info(f"[MESSAGES] Deleted message {message_id}")
    hooks.delete_mirror(EntityKind.MESSAGE, message_id)
    return {"ok": True, "deleted": message_id}
