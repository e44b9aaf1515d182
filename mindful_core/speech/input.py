"""语音识别（STT）状态机。

识别引擎原本通过回调推送临时/最终结果；这里改为由调用方 await poll()
逐条拉取，保证状态变化的顺序是确定的。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from mindful_core.domain.exceptions import SpeechError
from mindful_core.infrastructure.logging.logger import logger


@dataclass(frozen=True)
class RecognitionResult:
    transcript: str
    is_final: bool


class SpeechRecognizer(Protocol):
    """语音识别引擎。next_result 返回 None 表示本次识别结束。"""

    def start(self, lang: str) -> None:
        ...

    def stop(self) -> None:
        ...

    def abort(self) -> None:
        ...

    async def next_result(self) -> Optional[RecognitionResult]:
        ...


class ListenPhase(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"


class SpeechInput:
    def __init__(self, recognizer: Optional[SpeechRecognizer] = None, *, lang: str = "en-US"):
        self._recognizer = recognizer
        self.phase = ListenPhase.IDLE
        self.lang = lang
        self.transcript = ""
        self.interim = ""
        self.error: Optional[str] = None

    @property
    def supported(self) -> bool:
        return self._recognizer is not None

    @property
    def is_listening(self) -> bool:
        return self.phase is ListenPhase.LISTENING

    @property
    def display_text(self) -> str:
        """监听中输入框里显示的文本：已确认部分 + 临时部分。"""

        return self.transcript + self.interim

    def start(self) -> bool:
        if self._recognizer is None or self.is_listening:
            return False
        self.reset()
        self.error = None
        try:
            self._recognizer.start(self.lang)
        except SpeechError as e:
            self.error = e.code
            logger.warning("Speech recognition failed to start", extra={"extra": {"error": e.message}})
            return False
        self.phase = ListenPhase.LISTENING
        return True

    async def poll(self) -> bool:
        """拉取一条识别结果；返回 False 表示已经不在监听状态。"""

        if self._recognizer is None or not self.is_listening:
            return False
        try:
            result = await self._recognizer.next_result()
        except SpeechError as e:
            self.error = e.code
            self.phase = ListenPhase.IDLE
            self.interim = ""
            logger.warning("Speech recognition error", extra={"extra": {"error": e.message}})
            return False
        if result is None:
            self.phase = ListenPhase.IDLE
            self.interim = ""
            return False
        if result.is_final:
            self.transcript += result.transcript
            self.interim = ""
        else:
            self.interim = result.transcript
        return True

    async def listen(self) -> str:
        """一直拉取到识别结束，返回最终文本。"""

        while await self.poll():
            pass
        return self.transcript

    def stop(self) -> None:
        if self._recognizer is not None and self.is_listening:
            self._recognizer.stop()

    def abort(self) -> None:
        if self._recognizer is not None:
            self._recognizer.abort()
        self.phase = ListenPhase.IDLE
        self.interim = ""

    def reset(self) -> None:
        self.transcript = ""
        self.interim = ""

    def change_language(self, lang: str) -> None:
        self.lang = lang
