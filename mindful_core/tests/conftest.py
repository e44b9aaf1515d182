import json
from typing import List

import pytest


def _sse_chunks(*fragments: str, done: bool = True) -> List[bytes]:
    chunks = [
        f"data: {json.dumps({'choices': [{'delta': {'content': f}}]})}\n\n".encode("utf-8")
        for f in fragments
    ]
    if done:
        chunks.append(b"data: [DONE]\n\n")
    return chunks


@pytest.fixture
def sse_chunks():
    """把文本片段编码成对话端点的事件流字节块。"""
    return _sse_chunks
