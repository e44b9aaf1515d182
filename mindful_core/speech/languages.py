"""语音语言、音色的静态数据与选择逻辑。"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Language:
    code: str
    name: str
    flag: str


@dataclass(frozen=True)
class Voice:
    """合成引擎提供的一个音色。"""

    name: str
    lang: str


@dataclass(frozen=True)
class VoiceOption:
    voice: Voice
    label: str
    is_natural: bool


SUPPORTED_LANGUAGES: Tuple[Language, ...] = (
    Language("en-US", "English (US)", "🇺🇸"),
    Language("en-GB", "English (UK)", "🇬🇧"),
    Language("en-AU", "English (AU)", "🇦🇺"),
    Language("en-IN", "English (India)", "🇮🇳"),
    Language("es-ES", "Spanish (Spain)", "🇪🇸"),
    Language("es-MX", "Spanish (Mexico)", "🇲🇽"),
    Language("fr-FR", "French", "🇫🇷"),
    Language("de-DE", "German", "🇩🇪"),
    Language("it-IT", "Italian", "🇮🇹"),
    Language("pt-BR", "Portuguese (Brazil)", "🇧🇷"),
    Language("pt-PT", "Portuguese (Portugal)", "🇵🇹"),
    Language("zh-CN", "Chinese (Mandarin)", "🇨🇳"),
    Language("ja-JP", "Japanese", "🇯🇵"),
    Language("ko-KR", "Korean", "🇰🇷"),
    Language("hi-IN", "Hindi", "🇮🇳"),
    Language("ta-IN", "Tamil", "🇮🇳"),
    Language("ar-SA", "Arabic", "🇸🇦"),
    Language("ru-RU", "Russian", "🇷🇺"),
)

_ENGLISH_TEST = "Hello! I'm your wellness companion."

# 试听音色时朗读的句子
TEST_PHRASES: Dict[str, str] = {
    "en-US": _ENGLISH_TEST,
    "en-GB": _ENGLISH_TEST,
    "en-AU": _ENGLISH_TEST,
    "en-IN": _ENGLISH_TEST,
    "es-ES": "¡Hola! Soy tu compañero de bienestar.",
    "es-MX": "¡Hola! Soy tu compañero de bienestar.",
    "fr-FR": "Bonjour! Je suis votre compagnon de bien-être.",
    "de-DE": "Hallo! Ich bin dein Wellness-Begleiter.",
    "it-IT": "Ciao! Sono il tuo compagno di benessere.",
    "pt-BR": "Olá! Eu sou seu companheiro de bem-estar.",
    "pt-PT": "Olá! Eu sou o seu companheiro de bem-estar.",
    "zh-CN": "你好！我是你的健康伴侣。",
    "ja-JP": "こんにちは！私はあなたのウェルネスコンパニオンです。",
    "ko-KR": "안녕하세요! 저는 당신의 웰니스 동반자입니다.",
    "hi-IN": "नमस्ते! मैं आपका वेलनेस साथी हूं।",
    "ta-IN": "வணக்கம்! நான் உங்கள் நல்வாழ்வு தோழன்.",
    "ar-SA": "مرحباً! أنا رفيقك في الصحة.",
    "ru-RU": "Привет! Я ваш компаньон по здоровью.",
}

_NATURAL_MARKERS = ("Natural", "Enhanced", "Neural", "Google")


def find_language(code: str) -> Optional[Language]:
    for lang in SUPPORTED_LANGUAGES:
        if lang.code == code:
            return lang
    return None


def test_phrase(code: str) -> str:
    return TEST_PHRASES.get(code, TEST_PHRASES["en-US"])


def voices_for_language(voices: Sequence[Voice], lang: str) -> List[VoiceOption]:
    """按语言前缀（en-US -> en）筛选音色，并为其他口音加上标注。"""

    prefix = lang.split("-")[0].lower()
    options: List[VoiceOption] = []
    for voice in voices:
        if not voice.lang.lower().startswith(prefix):
            continue
        label = voice.name
        if voice.lang != lang:
            info = find_language(voice.lang)
            if info:
                label = f"{voice.name} ({info.name})"
        is_natural = any(marker in voice.name for marker in _NATURAL_MARKERS)
        options.append(VoiceOption(voice=voice, label=label, is_natural=is_natural))
    return options


def pick_voice(options: Sequence[VoiceOption], index: Optional[int] = None) -> Optional[Voice]:
    """用户选过就用选中的；否则优先自然音色，再退回第一个。"""

    if index is not None and 0 <= index < len(options):
        return options[index].voice
    if not options:
        return None
    for option in options:
        if option.is_natural:
            return option.voice
    return options[0].voice
