import json

import pytest

from mindful_core.domain.exceptions import NetworkError
from mindful_core.streaming.decoder import FrameDecoder, iter_frames


def _frame(text):
    return {"choices": [{"delta": {"content": text}}]}


def _line(text):
    return f"data: {json.dumps(_frame(text), ensure_ascii=False)}\n\n".encode("utf-8")


def _decode(chunks):
    decoder = FrameDecoder()
    frames = []
    for chunk in chunks:
        frames.extend(decoder.feed(chunk))
    frames.extend(decoder.close())
    return frames


STREAM = b": keep-alive\n\n" + _line("Hel") + _line("lo ") + _line("there") + b"data: [DONE]\n\n"


def test_decoder_whole_stream():
    frames = _decode([STREAM])
    assert frames == [_frame("Hel"), _frame("lo "), _frame("there")]


def test_decoder_chunking_invariance_two_parts():
    expected = _decode([STREAM])
    for i in range(1, len(STREAM)):
        assert _decode([STREAM[:i], STREAM[i:]]) == expected


def test_decoder_chunking_invariance_single_bytes():
    expected = _decode([STREAM])
    assert _decode([STREAM[i : i + 1] for i in range(len(STREAM))]) == expected


def test_decoder_sentinel_stops_processing():
    decoder = FrameDecoder()
    frames = decoder.feed(_line("a") + b"data: [DONE]\n\n" + _line("b"))
    assert frames == [_frame("a")]
    assert decoder.done
    assert decoder.feed(_line("c")) == []
    assert decoder.close() == []


def test_decoder_skips_comments_and_crlf():
    payload = b": ping\r\n" + f"data: {json.dumps(_frame('x'))}\r\n\r\n".encode()
    assert _decode([payload]) == [_frame("x")]


def test_decoder_skips_unknown_fields():
    payload = b"event: message\nid: 7\n" + _line("x")
    assert _decode([payload]) == [_frame("x")]


def test_decoder_drops_malformed_frame_and_continues():
    decoder = FrameDecoder()
    frames = decoder.feed(b"data: {not json}\n\n" + _line("ok"))
    assert frames == [_frame("ok")]
    assert decoder.frames_dropped == 1
    assert decoder.frames_emitted == 1


def test_decoder_malformed_followed_directly_by_new_record():
    frames = _decode([b"data: {broken\n" + _line("ok")])
    assert frames == [_frame("ok")]


def test_decoder_joins_continuation_line():
    payload = b'data: {"choices": [{"delta":\n{"content": "x"}}]}\n\n'
    assert _decode([payload]) == [_frame("x")]


def test_decoder_keep_alive_inside_split_record():
    decoder = FrameDecoder()
    payload = b'data: {"choices":[{"delta":\n: keep-alive\n{"content":"x"}}]}\n\n'
    assert decoder.feed(payload) == [_frame("x")]
    assert decoder.frames_dropped == 0


def test_decoder_drops_non_object_payload():
    decoder = FrameDecoder()
    assert decoder.feed(b"data: [1, 2]\n\n") == []
    assert decoder.frames_dropped == 1


def test_decoder_flushes_unterminated_last_line():
    payload = f"data: {json.dumps(_frame('tail'))}".encode()
    decoder = FrameDecoder()
    assert decoder.feed(payload) == []
    assert decoder.close() == [_frame("tail")]


def test_decoder_utf8_split_across_chunks():
    data = _line("héllo 💙")
    # 在 emoji 的多字节编码中间切开
    cut = data.index("💙".encode("utf-8")) + 2
    frames = _decode([data[:cut], data[cut:]])
    assert frames == [_frame("héllo 💙")]


class _Chunks:
    def __init__(self, chunks, error=None):
        self._chunks = list(chunks)
        self._error = error
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_iter_frames_stops_at_sentinel_and_closes_source():
    source = _Chunks([_line("a"), b"data: [DONE]\n\n", _line("never")])
    frames = [f async for f in iter_frames(source)]
    assert frames == [_frame("a")]
    assert source.closed


@pytest.mark.asyncio
async def test_iter_frames_without_sentinel_ends_on_close():
    source = _Chunks([_line("a"), _line("b")])
    frames = [f async for f in iter_frames(source)]
    assert frames == [_frame("a"), _frame("b")]


@pytest.mark.asyncio
async def test_iter_frames_propagates_read_error_after_frames():
    source = _Chunks([_line("a"), _line("b")], error=NetworkError(code="NETWORK_ERROR", message="reset"))
    seen = []
    with pytest.raises(NetworkError):
        async for frame in iter_frames(source):
            seen.append(frame)
    assert seen == [_frame("a"), _frame("b")]
    assert source.closed
