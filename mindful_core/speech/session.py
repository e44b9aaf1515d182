"""语音会话状态：语言、TTS 开关、语速。只存在于当前会话，从不持久化。"""

from dataclasses import dataclass, field
from typing import Optional

from mindful_core.domain.exceptions import ValidationError
from mindful_core.speech.input import SpeechInput
from mindful_core.speech.languages import find_language, test_phrase
from mindful_core.speech.output import SpeechOutput


@dataclass
class VoiceSession:
    output: SpeechOutput = field(default_factory=SpeechOutput)
    input: SpeechInput = field(default_factory=SpeechInput)
    language: str = "en-US"
    tts_enabled: bool = False

    def __post_init__(self) -> None:
        self.output.change_language(self.language)
        self.input.change_language(self.language)

    @property
    def speaking_id(self) -> Optional[str]:
        return self.output.speaking_id if self.output.is_speaking else None

    def change_language(self, code: str) -> None:
        if find_language(code) is None:
            raise ValidationError(code="UNSUPPORTED_LANGUAGE", message=code)
        self.language = code
        self.output.change_language(code)
        self.input.change_language(code)

    def set_speech_rate(self, rate: float) -> None:
        if not 0.1 <= rate <= 2.0:
            raise ValidationError(code="INVALID_SPEECH_RATE", message=str(rate))
        self.output.rate = rate

    def toggle_tts(self, enabled: bool) -> None:
        self.tts_enabled = enabled
        if not enabled:
            self.output.stop()

    def test_voice(self) -> bool:
        return self.output.speak(test_phrase(self.language))
