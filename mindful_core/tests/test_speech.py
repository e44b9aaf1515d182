import asyncio

import pytest

from mindful_core.domain.exceptions import SpeechError, ValidationError
from mindful_core.speech import (
    SUPPORTED_LANGUAGES,
    TEST_PHRASES,
    RecognitionResult,
    SpeechInput,
    SpeechOutput,
    Voice,
    VoiceSession,
    pick_voice,
    voices_for_language,
)

VOICES = [
    Voice(name="Alex", lang="en-US"),
    Voice(name="Google UK English Female", lang="en-GB"),
    Voice(name="Amelie", lang="fr-FR"),
]


class FakeSynth:
    def __init__(self, voices=VOICES, block=False, fail=False):
        self._voices = voices
        self._block = block
        self._fail = fail
        self.spoken = []
        self.cancelled = 0

    def voices(self):
        return self._voices

    async def speak(self, text, *, voice, rate, lang):
        self.spoken.append((text, voice, rate, lang))
        if self._fail:
            raise SpeechError(code="SYNTHESIS_FAILED", message="engine error")
        if self._block:
            await asyncio.Event().wait()

    def cancel(self):
        self.cancelled += 1


class FakeRecognizer:
    def __init__(self, results):
        self._results = list(results)
        self.started_with = None
        self.stopped = False

    def start(self, lang):
        self.started_with = lang

    def stop(self):
        self.stopped = True

    def abort(self):
        self._results = []

    async def next_result(self):
        if not self._results:
            return None
        item = self._results.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def test_supported_languages_have_test_phrases():
    assert len(SUPPORTED_LANGUAGES) == 18
    assert {lang.code for lang in SUPPORTED_LANGUAGES} == set(TEST_PHRASES)


def test_voices_for_language_filters_by_prefix_and_labels():
    options = voices_for_language(VOICES, "en-US")
    assert [o.voice.name for o in options] == ["Alex", "Google UK English Female"]
    assert options[0].label == "Alex"
    assert options[1].label == "Google UK English Female (English (UK))"
    assert [o.is_natural for o in options] == [False, True]


def test_pick_voice_prefers_selection_then_natural():
    options = voices_for_language(VOICES, "en-US")
    assert pick_voice(options, 0).name == "Alex"
    assert pick_voice(options).name == "Google UK English Female"
    assert pick_voice(options, 9).name == "Google UK English Female"
    assert pick_voice([]) is None


@pytest.mark.asyncio
async def test_speech_output_speaks_and_returns_to_idle():
    synth = FakeSynth()
    out = SpeechOutput(synth, rate=0.9)
    assert out.speak("Hello there", "m1")
    assert out.is_speaking and out.speaking_id == "m1"
    await out.wait()
    assert not out.is_speaking and out.speaking_id is None
    text, voice, rate, lang = synth.spoken[0]
    assert (text, voice.name, rate, lang) == ("Hello there", "Google UK English Female", 0.9, "en-US")


@pytest.mark.asyncio
async def test_speech_output_is_exclusive():
    synth = FakeSynth(block=True)
    out = SpeechOutput(synth)
    out.speak("first", "m1")
    await asyncio.sleep(0)
    out.speak("second", "m2")
    assert out.speaking_id == "m2"
    assert synth.cancelled == 2
    for _ in range(3):
        await asyncio.sleep(0)
    assert [s[0] for s in synth.spoken] == ["first", "second"]
    assert out.speaking_id == "m2"
    out.stop()
    assert not out.is_speaking
    await out.wait()
    await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_speech_output_ignores_blank_and_unsupported():
    assert not SpeechOutput(FakeSynth()).speak("   ")
    assert not SpeechOutput(None).speak("hello")


@pytest.mark.asyncio
async def test_speech_output_engine_error_returns_to_idle():
    out = SpeechOutput(FakeSynth(fail=True))
    out.speak("hello", "m1")
    await out.wait()
    assert not out.is_speaking


def test_speech_output_language_change_resets_voice():
    out = SpeechOutput(FakeSynth())
    out.select_voice(1)
    out.change_language("fr-FR")
    assert out.selected_voice_index is None
    assert [o.voice.name for o in out.available_voices()] == ["Amelie"]


@pytest.mark.asyncio
async def test_speech_input_collects_transcript():
    rec = FakeRecognizer([
        RecognitionResult("I feel", is_final=False),
        RecognitionResult("I feel okay", is_final=True),
        RecognitionResult(" today", is_final=False),
    ])
    stt = SpeechInput(rec, lang="en-GB")
    assert stt.start()
    assert rec.started_with == "en-GB"
    assert not stt.start()

    assert await stt.poll()
    assert stt.display_text == "I feel"
    assert await stt.poll()
    assert stt.transcript == "I feel okay" and stt.interim == ""
    assert await stt.poll()
    assert stt.display_text == "I feel okay today"

    stt.stop()
    assert rec.stopped
    assert not await stt.poll()
    assert not stt.is_listening
    assert stt.display_text == "I feel okay"


@pytest.mark.asyncio
async def test_speech_input_error_goes_idle():
    rec = FakeRecognizer([SpeechError(code="not-allowed", message="microphone blocked")])
    stt = SpeechInput(rec)
    stt.start()
    assert await stt.listen() == ""
    assert stt.error == "not-allowed"
    assert not stt.is_listening


def test_speech_input_unsupported():
    assert not SpeechInput(None).start()


def test_voice_session_language_fan_out():
    session = VoiceSession(output=SpeechOutput(FakeSynth()), input=SpeechInput(FakeRecognizer([])))
    session.change_language("fr-FR")
    assert session.output.lang == "fr-FR"
    assert session.input.lang == "fr-FR"
    with pytest.raises(ValidationError):
        session.change_language("xx-XX")
    with pytest.raises(ValidationError):
        session.set_speech_rate(5)


@pytest.mark.asyncio
async def test_voice_session_test_voice_and_toggle():
    synth = FakeSynth(block=True)
    session = VoiceSession(output=SpeechOutput(synth), language="de-DE")
    assert session.test_voice()
    await asyncio.sleep(0)
    assert synth.spoken[0][0] == TEST_PHRASES["de-DE"]
    session.toggle_tts(True)
    session.toggle_tts(False)
    assert not session.output.is_speaking
