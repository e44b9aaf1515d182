"""每日励志语录与收藏。"""

import random
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional

from mindful_core.domain.conversation import QuoteStore, SavedQuote
from mindful_core.domain.models import UserContext, new_message_id
from mindful_core.infrastructure.logging.logger import logger


@dataclass(frozen=True)
class Quote:
    text: str
    author: str


QUOTES: List[Quote] = [
    Quote("The only way to do great work is to love what you do.", "Steve Jobs"),
    Quote("Happiness is not something ready-made. It comes from your own actions.", "Dalai Lama"),
    Quote("You are never too old to set another goal or to dream a new dream.", "C.S. Lewis"),
    Quote("The future belongs to those who believe in the beauty of their dreams.", "Eleanor Roosevelt"),
    Quote("It is during our darkest moments that we must focus to see the light.", "Aristotle"),
    Quote("Believe you can and you're halfway there.", "Theodore Roosevelt"),
    Quote("The best time to plant a tree was 20 years ago. The second best time is now.", "Chinese Proverb"),
    Quote("Your limitation—it's only your imagination.", "Unknown"),
    Quote("Push yourself, because no one else is going to do it for you.", "Unknown"),
    Quote("Great things never come from comfort zones.", "Unknown"),
    Quote("Dream it. Wish it. Do it.", "Unknown"),
    Quote("Success doesn't just find you. You have to go out and get it.", "Unknown"),
    Quote("The harder you work for something, the greater you'll feel when you achieve it.", "Unknown"),
    Quote("Don't stop when you're tired. Stop when you're done.", "Unknown"),
    Quote("Wake up with determination. Go to bed with satisfaction.", "Unknown"),
    Quote("Do something today that your future self will thank you for.", "Unknown"),
    Quote("Little things make big days.", "Unknown"),
    Quote("It's going to be hard, but hard does not mean impossible.", "Unknown"),
    Quote("Don't wait for opportunity. Create it.", "Unknown"),
    Quote("Sometimes we're tested not to show our weaknesses, but to discover our strengths.", "Unknown"),
    Quote("You don't have to be great to start, but you have to start to be great.", "Zig Ziglar"),
    Quote("Be kind to yourself. You're doing the best you can.", "Unknown"),
    Quote("Every day is a new beginning. Take a deep breath, smile, and start again.", "Unknown"),
    Quote(
        "Your mental health is a priority. Your happiness is essential. Your self-care is a necessity.",
        "Unknown",
    ),
]


def _day_key(day: date) -> str:
    # 形如 "Mon Oct 05 2026"
    return day.strftime("%a %b %d %Y")


def quote_of_the_day(day: date) -> Quote:
    """同一天总是返回同一条语录：日期字符串各字符码之和对列表长度取模。"""

    index = sum(ord(ch) for ch in _day_key(day)) % len(QUOTES)
    return QUOTES[index]


def random_quote(rng: Optional[random.Random] = None) -> Quote:
    return (rng or random).choice(QUOTES)


def share_text(quote: Quote) -> str:
    return f'"{quote.text}" — {quote.author}'


class QuoteCollection:
    """用户收藏的语录。以语录文本去重。"""

    def __init__(self, store: QuoteStore):
        self._store = store
        self._saved: List[str] = []

    @property
    def saved_texts(self) -> List[str]:
        return list(self._saved)

    async def load(self, ctx: UserContext) -> List[str]:
        rows = await self._store.list_saved_quotes(ctx)
        self._saved = [r.quote for r in rows]
        return self.saved_texts

    async def save(self, ctx: UserContext, quote: Quote) -> bool:
        if quote.text in self._saved:
            return False
        await self._store.add_saved_quote(
            ctx,
            SavedQuote(
                id=new_message_id(),
                user_id=ctx.user_id,
                quote=quote.text,
                created_at=datetime.now(timezone.utc),
                author=quote.author,
            ),
        )
        self._saved.append(quote.text)
        logger.info("Quote saved", extra={"extra": {"user_id": ctx.user_id, "total": len(self._saved)}})
        return True
