# app/dependencies.py
"""
Per-request collaborators shared by the routers.

The secondary store and event bus are process-wide (created on startup and
kept on app.state). Hooks and resolvers are per request.
"""

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.hooks import PostCommitHooks
from app.services.mirror_service import MirrorService
from app.services.read_resolution import ReadResolver


def get_secondary(request: Request):
    return getattr(request.app.state, "secondary", None)


def get_event_bus(request: Request):
    return getattr(request.app.state, "event_bus", None)


def get_hooks(request: Request, background_tasks: BackgroundTasks) -> PostCommitHooks:
    """Hooks run as a background task, after the response has been sent."""
    secondary = get_secondary(request)
    hooks = PostCommitHooks(
        mirror=MirrorService(secondary) if secondary is not None else None,
        bus=get_event_bus(request),
    )
    background_tasks.add_task(hooks.run)
    return hooks


def get_resolver(db: Session = Depends(get_db), secondary=Depends(get_secondary)) -> ReadResolver:
    return ReadResolver(db, secondary)
