from mindful_core.wellbeing.data import clear_user_data
from mindful_core.wellbeing.helplines import HELPLINES, Helpline, tel_link
from mindful_core.wellbeing.journal import GratitudeJournal, today_entry
from mindful_core.wellbeing.mood import MoodSummary, MoodTracker, summarize
from mindful_core.wellbeing.motivation import QUOTES, Quote, QuoteCollection, quote_of_the_day, random_quote
from mindful_core.wellbeing.sharing import share_text, whatsapp_url

__all__ = [
    "HELPLINES",
    "GratitudeJournal",
    "Helpline",
    "MoodSummary",
    "MoodTracker",
    "QUOTES",
    "Quote",
    "QuoteCollection",
    "clear_user_data",
    "quote_of_the_day",
    "random_quote",
    "share_text",
    "summarize",
    "tel_link",
    "today_entry",
    "whatsapp_url",
]
