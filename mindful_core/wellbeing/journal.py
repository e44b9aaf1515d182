"""感恩日记：每条最多记三件事，第一件必填。"""

from datetime import date, datetime, timezone
from typing import List, Optional

from mindful_core.domain.conversation import GratitudeEntry, JournalStore
from mindful_core.domain.exceptions import ValidationError
from mindful_core.domain.models import UserContext, new_message_id
from mindful_core.infrastructure.logging.logger import logger


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def today_entry(entries: List[GratitudeEntry], today: date) -> Optional[GratitudeEntry]:
    for entry in entries:
        if entry.created_at.date() == today:
            return entry
    return None


class GratitudeJournal:
    def __init__(self, store: JournalStore):
        self._store = store

    async def save(
        self,
        ctx: UserContext,
        entry_1: str,
        entry_2: Optional[str] = None,
        entry_3: Optional[str] = None,
    ) -> GratitudeEntry:
        first = _blank_to_none(entry_1)
        if first is None:
            raise ValidationError(
                code="EMPTY_GRATITUDE_ENTRY",
                message="Please write at least one thing you're grateful for",
            )
        entry = GratitudeEntry(
            id=new_message_id(),
            user_id=ctx.user_id,
            entry_1=first,
            created_at=datetime.now(timezone.utc),
            entry_2=_blank_to_none(entry_2),
            entry_3=_blank_to_none(entry_3),
        )
        saved = await self._store.add_gratitude_entry(ctx, entry)
        logger.info("Gratitude entry saved", extra={"extra": {"user_id": ctx.user_id, "entry_id": saved.id}})
        return saved

    async def list(self, ctx: UserContext, limit: int = 20) -> List[GratitudeEntry]:
        return await self._store.list_gratitude_entries(ctx, limit=limit)

    async def delete(self, ctx: UserContext, entry_id: str) -> None:
        await self._store.delete_gratitude_entry(ctx, entry_id)
        logger.info("Gratitude entry deleted", extra={"extra": {"user_id": ctx.user_id, "entry_id": entry_id}})
