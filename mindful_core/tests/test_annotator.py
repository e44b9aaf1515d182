from mindful_core.streaming import (
    DeltaAggregator,
    annotate,
    clean_content,
    clean_partial,
    detect_distress,
    extract_emotion,
    extract_fragment,
)


def _frame(text):
    return {"choices": [{"delta": {"content": text}}]}


def test_aggregator_concatenates_in_order():
    agg = DeltaAggregator()
    results = [agg.feed(_frame(t)) for t in ("Hel", "lo ", "there")]
    assert results == ["Hel", "Hello ", "Hello there"]
    assert agg.content == "Hello there"
    assert agg.fragments == 3


def test_aggregator_ignores_frames_without_content():
    agg = DeltaAggregator()
    assert agg.feed({"choices": [{"delta": {"role": "assistant"}}]}) is None
    assert agg.feed({"choices": []}) is None
    assert agg.feed({"id": "x"}) is None
    assert agg.feed(_frame("")) is None
    assert agg.content == ""
    assert agg.fragments == 0


def test_extract_fragment_tolerates_bad_shapes():
    assert extract_fragment({"choices": "nope"}) is None
    assert extract_fragment({"choices": [{"delta": None}]}) is None
    assert extract_fragment({"choices": [{"delta": {"content": 3}}]}) is None
    assert extract_fragment(_frame("x")) == "x"


def test_extract_and_clean_single_marker():
    text = "It sounds like a lot right now. [EMOTION: anxious]"
    assert extract_emotion(text) == "anxious"
    assert clean_content(text) == "It sounds like a lot right now."


def test_emotion_is_case_insensitive_and_first_wins():
    text = "[emotion: CALM] ok [EMOTION: sad]"
    assert extract_emotion(text) == "calm"
    assert clean_content(text) == "ok"


def test_unknown_emotion_is_not_a_marker():
    text = "hi [EMOTION: angry]"
    assert extract_emotion(text) is None
    assert clean_content(text) == text


def test_clean_is_idempotent():
    samples = [
        "plain text",
        "  padded [EMOTION: happy]  ",
        "[EMO[EMOTION: sad]TION: happy] nested",
        "[EMOTION: neutral][EMOTION: calm]",
        "",
    ]
    for s in samples:
        once = clean_content(s)
        assert clean_content(once) == once
        assert extract_emotion(once) is None


def test_clean_partial_hides_unfinished_marker():
    assert clean_partial("Take a breath [EMOTION: ca") == "Take a breath"
    assert clean_partial("Take a breath [EMO") == "Take a breath"
    assert clean_partial("Take a breath") == "Take a breath"


def test_annotate():
    result = annotate("Glad to hear it! [EMOTION: happy]")
    assert result.emotion == "happy"
    assert result.clean_text == "Glad to hear it!"


def test_detect_distress():
    assert detect_distress("I want to die")
    assert detect_distress("Sometimes I feel HOPELESS")
    assert detect_distress("I can't go on like this")
    assert not detect_distress("I want to buy a cake")
    assert not detect_distress("")
