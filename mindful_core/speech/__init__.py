"""语音能力：以注入接口表示的识别/合成引擎，以及各自的小状态机。"""

from mindful_core.speech.input import ListenPhase, RecognitionResult, SpeechInput, SpeechRecognizer
from mindful_core.speech.languages import (
    SUPPORTED_LANGUAGES,
    TEST_PHRASES,
    Language,
    Voice,
    VoiceOption,
    pick_voice,
    voices_for_language,
)
from mindful_core.speech.output import SpeechOutput, SpeechPhase, SpeechSynthesizer
from mindful_core.speech.session import VoiceSession

__all__ = [
    "Language",
    "ListenPhase",
    "RecognitionResult",
    "SUPPORTED_LANGUAGES",
    "SpeechInput",
    "SpeechOutput",
    "SpeechPhase",
    "SpeechRecognizer",
    "SpeechSynthesizer",
    "TEST_PHRASES",
    "Voice",
    "VoiceOption",
    "VoiceSession",
    "pick_voice",
    "voices_for_language",
]
