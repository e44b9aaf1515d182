from urllib.parse import quote

DEFAULT_SHARE_TITLE = "MindfulMe Chat"


def share_text(content: str, title: str = DEFAULT_SHARE_TITLE) -> str:
    return f"{title}\n\n{content}"


def whatsapp_url(content: str, title: str = DEFAULT_SHARE_TITLE) -> str:
    # 与 encodeURIComponent 保持一致的保留字符集
    return "https://wa.me/?text=" + quote(share_text(content, title), safe="-_.!~*'()")
