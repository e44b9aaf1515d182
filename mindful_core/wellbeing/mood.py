"""情绪记录与最近 7 天统计。"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional

from mindful_core.config.settings import settings
from mindful_core.domain.conversation import MoodEntry, MoodStore
from mindful_core.domain.exceptions import ValidationError
from mindful_core.domain.models import EMOTIONS, Emotion, UserContext, new_message_id
from mindful_core.infrastructure.logging.logger import logger

POSITIVE_MOODS = ("happy", "calm")


@dataclass
class DailyMood:
    day: date
    counts: Dict[str, int]


@dataclass
class MoodSummary:
    counts: Dict[str, int] = field(default_factory=dict)
    daily: List[DailyMood] = field(default_factory=list)
    dominant: Optional[str] = None
    positive_count: int = 0


def summarize(entries: List[MoodEntry], today: date, days: int = 7) -> MoodSummary:
    """统计情绪分布、逐日计数（最早的一天在前）、主导情绪和积极情绪次数。

    主导情绪取次数最多者；并列时取较晚出现的那个。
    """

    counts: Dict[str, int] = {}
    for entry in entries:
        counts[entry.mood] = counts.get(entry.mood, 0) + 1

    daily: List[DailyMood] = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        per_day = {mood: 0 for mood in EMOTIONS}
        for entry in entries:
            if entry.day == day:
                per_day[entry.mood] = per_day.get(entry.mood, 0) + 1
        daily.append(DailyMood(day=day, counts=per_day))

    dominant: Optional[str] = None
    for mood, count in counts.items():
        if dominant is None or count >= counts[dominant]:
            dominant = mood

    positive = sum(1 for e in entries if e.mood in POSITIVE_MOODS)
    return MoodSummary(counts=counts, daily=daily, dominant=dominant, positive_count=positive)


class MoodTracker:
    def __init__(self, store: MoodStore):
        self._store = store

    async def log_mood(
        self,
        ctx: UserContext,
        mood: Emotion,
        intensity: Optional[int] = None,
        note: Optional[str] = None,
    ) -> MoodEntry:
        if mood not in EMOTIONS:
            raise ValidationError(code="INVALID_MOOD", message=f"unknown mood: {mood}")
        if intensity is None:
            intensity = settings.mood_default_intensity
        if not 1 <= intensity <= 10:
            raise ValidationError(code="INVALID_INTENSITY", message="intensity must be between 1 and 10")

        entry = MoodEntry(
            id=new_message_id(),
            user_id=ctx.user_id,
            mood=mood,
            intensity=intensity,
            created_at=datetime.now(timezone.utc),
            note=note,
        )
        saved = await self._store.add_mood_entry(ctx, entry)
        logger.info("Mood logged", extra={"extra": {"user_id": ctx.user_id, "mood": mood}})
        return saved

    async def recent(self, ctx: UserContext, days: int = 7, now: Optional[datetime] = None) -> List[MoodEntry]:
        """最近 days 天（从当天零点往前算）的记录，按时间升序。"""

        now = now or datetime.now(timezone.utc)
        since = datetime.combine((now - timedelta(days=days)).date(), time.min, tzinfo=timezone.utc)
        return await self._store.list_mood_entries(ctx, since=since)
