"""求助页展示的心理援助热线。"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Helpline:
    name: str
    number: str
    description: str
    hours: str


HELPLINES: Tuple[Helpline, ...] = (
    Helpline("iCall", "9152987821", "Psychosocial helpline by TISS", "Mon-Sat: 8am-10pm"),
    Helpline("Vandrevala Foundation", "1860-2662-345", "24/7 mental health support", "24 hours, 7 days"),
    Helpline("AASRA", "9820466726", "Crisis intervention center", "24 hours, 7 days"),
    Helpline("Snehi", "044-24640050", "Emotional support helpline", "24 hours, 7 days"),
    Helpline("NIMHANS", "080-46110007", "National mental health support", "24 hours, 7 days"),
)

COPING_TIPS: Tuple[str, ...] = (
    "Take slow, deep breaths. Inhale for 4, hold for 4, exhale for 4.",
    "Listen to calming music or sounds of nature.",
    "Go for a short walk, even just around your room.",
    "Drink a glass of water slowly and mindfully.",
    "Reach out to someone you trust and talk to them.",
)


def tel_link(number: str) -> str:
    return f"tel:{number}"
