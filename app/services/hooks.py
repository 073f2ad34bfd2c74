# app/services/hooks.py
"""
Post-commit hooks.

Entity services register side effects (mirror upserts/deletes, fan-out events)
on a per-request PostCommitHooks after their primary commit succeeds. The
router dependency schedules run() as a background task, so hooks execute
after the response is sent and never change it. Each hook is isolated: one
failing hook is logged and the rest still run.
"""

import inspect

from app.services.mirror_service import EntityKind, MirrorService, row_snapshot
from app.utils.logger import get_logger

logger = get_logger(__name__)


class PostCommitHooks:
    def __init__(self, mirror: MirrorService = None, bus=None):
        self.mirror_service = mirror
        self.bus = bus
        self._hooks = []

    def __len__(self):
        return len(self._hooks)

    def add(self, fn, *args, **kwargs):
        self._hooks.append((fn, args, kwargs))

    def mirror(self, kind: EntityKind, row):
        """Queue a mirror upsert of the row as it is now."""
        if self.mirror_service is not None:
            self.add(self.mirror_service.mirror, kind, row_snapshot(row))

    def delete_mirror(self, kind: EntityKind, primary_id: int):
        if self.mirror_service is not None:
            self.add(self.mirror_service.delete_mirror, kind, primary_id)

    def publish(self, event: str, payload):
        if self.bus is not None:
            self.add(self.bus.publish, event, payload)

    async def run(self) -> list:
        """Run every queued hook in order. Returns the per-hook results (exceptions included)."""
        hooks, self._hooks = self._hooks, []
        results = []
        for fn, args, kwargs in hooks:
            name = getattr(fn, "__qualname__", repr(fn))
            try:
                result = fn(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception as e:
                logger.error(f"[HOOKS] {name} failed: {e}", exc_info=True)
                results.append(e)
        return results
