"""语音播放（TTS）状态机。

浏览器的语音合成是全局单例、回调驱动的；这里把它改造成注入的能力接口，
并用 idle/speaking 两个状态的小状态机管理。输出通道是独占的：
开始新的朗读之前一定先取消当前朗读。
"""

import asyncio
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from mindful_core.infrastructure.logging.logger import logger
from mindful_core.speech.languages import Voice, VoiceOption, pick_voice, voices_for_language


class SpeechSynthesizer(Protocol):
    """语音合成引擎。speak 在朗读结束时返回，出错时抛异常。"""

    def voices(self) -> Sequence[Voice]:
        ...

    async def speak(self, text: str, *, voice: Optional[Voice], rate: float, lang: str) -> None:
        ...

    def cancel(self) -> None:
        ...


class SpeechPhase(str, Enum):
    IDLE = "idle"
    SPEAKING = "speaking"


class SpeechOutput:
    def __init__(
        self,
        synthesizer: Optional[SpeechSynthesizer] = None,
        *,
        lang: str = "en-US",
        rate: float = 0.9,
    ):
        self._synth = synthesizer
        self._task: Optional[asyncio.Task] = None
        self.phase = SpeechPhase.IDLE
        self.speaking_id: Optional[str] = None
        self.lang = lang
        self.rate = rate
        self.selected_voice_index: Optional[int] = None

    @property
    def supported(self) -> bool:
        return self._synth is not None

    @property
    def is_speaking(self) -> bool:
        return self.phase is SpeechPhase.SPEAKING

    def available_voices(self) -> List[VoiceOption]:
        if self._synth is None:
            return []
        return voices_for_language(self._synth.voices(), self.lang)

    def change_language(self, lang: str) -> None:
        self.lang = lang
        # 换语言后之前选的音色索引不再有意义
        self.selected_voice_index = None

    def select_voice(self, index: Optional[int]) -> None:
        self.selected_voice_index = index

    def speak(self, text: str, message_id: Optional[str] = None) -> bool:
        """开始朗读；必须在事件循环中调用。返回是否真的开始了朗读。"""

        if self._synth is None or not (text or "").strip():
            return False
        self.stop()
        voice = pick_voice(self.available_voices(), self.selected_voice_index)
        self.phase = SpeechPhase.SPEAKING
        self.speaking_id = message_id
        self._task = asyncio.ensure_future(self._run(text, voice, message_id))
        return True

    def stop(self) -> None:
        if self._synth is not None:
            self._synth.cancel()
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        self.phase = SpeechPhase.IDLE
        self.speaking_id = None

    async def wait(self) -> None:
        """等待当前朗读结束（被取消也算结束）。"""

        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def _run(self, text: str, voice: Optional[Voice], message_id: Optional[str]) -> None:
        assert self._synth is not None
        try:
            await self._synth.speak(text, voice=voice, rate=self.rate, lang=self.lang)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "Speech playback failed",
                extra={"extra": {"message_id": message_id, "error": str(e)}},
            )
        finally:
            # 只有仍是当前朗读时才回到 idle，避免旧任务覆盖新朗读的状态
            if self._task is asyncio.current_task():
                self._task = None
                self.phase = SpeechPhase.IDLE
                self.speaking_id = None
