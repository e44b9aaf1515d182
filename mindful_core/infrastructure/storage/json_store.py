import json
import os
import re
import shutil
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from mindful_core.config.settings import settings
from mindful_core.domain.conversation import (
    Conversation,
    GratitudeEntry,
    MessageRecord,
    MoodEntry,
    SavedQuote,
)
from mindful_core.domain.exceptions import StoreError, ValidationError
from mindful_core.domain.models import UserContext

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.@-]+$")

MOOD_FILE = "mood_entries.jsonl"
GRATITUDE_FILE = "gratitude_entries.jsonl"
QUOTES_FILE = "saved_quotes.jsonl"


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_ts(value: Any) -> datetime:
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class JsonWellnessStore:
    """本地文件实现的 WellnessStore。

    目录结构（每个用户一棵子树，天然按归属隔离）：

        <root>/users/<user_id>/conversations/<cid>/meta.json
        <root>/users/<user_id>/conversations/<cid>/messages.jsonl
        <root>/users/<user_id>/mood_entries.jsonl
        <root>/users/<user_id>/gratitude_entries.jsonl
        <root>/users/<user_id>/saved_quotes.jsonl

    接口是 async 的，与托管存储保持一致；本地文件 IO 很小，直接同步完成。
    """

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._users_root = self._root / "users"
        self._users_root.mkdir(parents=True, exist_ok=True)

    # ---- conversations ---------------------------------------------

    async def create_conversation(self, ctx: UserContext, title: str) -> Conversation:
        cid = f"c-{uuid4().hex}"
        cdir = self._conv_root(ctx) / cid
        now = datetime.now(timezone.utc)
        conv = Conversation(id=cid, user_id=ctx.user_id, title=title, created_at=now, updated_at=now)
        try:
            cdir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(code="STORE_WRITE_ERROR", message=str(e))
        self._write_meta(cdir, conv)
        return conv

    async def list_conversations(self, ctx: UserContext) -> List[Conversation]:
        items: List[Conversation] = []
        root = self._conv_root(ctx)
        if not root.exists():
            return items
        for cdir in root.glob("*/"):
            meta_path = cdir / "meta.json"
            if not meta_path.exists():
                continue
            try:
                items.append(self._to_conversation(json.loads(meta_path.read_text(encoding="utf-8"))))
            except (OSError, ValueError, KeyError):
                continue
        items.sort(key=lambda c: c.updated_at, reverse=True)
        return items

    async def update_conversation(
        self,
        ctx: UserContext,
        conversation_id: str,
        *,
        title: Optional[str] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """更新标题和/或 updated_at；updated_at 只会前进不会后退。"""

        conv = self._get_conversation(ctx, conversation_id)
        if title is not None:
            conv.title = title
        if updated_at is not None and updated_at > conv.updated_at:
            conv.updated_at = updated_at
        self._write_meta(self._conv_dir(ctx, conversation_id), conv)

    async def delete_conversation(self, ctx: UserContext, conversation_id: str) -> None:
        cdir = self._conv_dir(ctx, conversation_id)
        if not cdir.exists():
            raise StoreError(code="CONVERSATION_NOT_FOUND", message=conversation_id)
        try:
            shutil.rmtree(cdir)
        except OSError as e:
            raise StoreError(code="STORE_DELETE_ERROR", message=str(e))

    async def delete_all_conversations(self, ctx: UserContext) -> None:
        root = self._conv_root(ctx)
        if not root.exists():
            return
        try:
            shutil.rmtree(root)
        except OSError as e:
            raise StoreError(code="STORE_DELETE_ERROR", message=str(e))

    # ---- messages --------------------------------------------------

    async def add_message(self, ctx: UserContext, message: MessageRecord) -> MessageRecord:
        if message.user_id != ctx.user_id:
            raise ValidationError(code="OWNER_MISMATCH", message="message does not belong to the caller")
        cdir = self._conv_dir(ctx, message.conversation_id)
        if not (cdir / "meta.json").exists():
            raise StoreError(code="CONVERSATION_NOT_FOUND", message=message.conversation_id)
        payload = asdict(message)
        payload["created_at"] = _ts(message.created_at)
        self._append_line(cdir / "messages.jsonl", payload)
        return message

    async def list_messages(self, ctx: UserContext, conversation_id: str) -> List[MessageRecord]:
        msgs_path = self._conv_dir(ctx, conversation_id) / "messages.jsonl"
        items = [self._to_message(data) for data in self._read_lines(msgs_path)]
        items.sort(key=lambda m: m.created_at)
        return items

    async def delete_all_messages(self, ctx: UserContext) -> None:
        root = self._conv_root(ctx)
        if not root.exists():
            return
        try:
            for msgs_path in root.glob("*/messages.jsonl"):
                msgs_path.unlink()
        except OSError as e:
            raise StoreError(code="STORE_DELETE_ERROR", message=str(e))

    # ---- mood entries ----------------------------------------------

    async def add_mood_entry(self, ctx: UserContext, entry: MoodEntry) -> MoodEntry:
        payload = asdict(entry)
        payload["created_at"] = _ts(entry.created_at)
        self._append_line(self._user_dir(ctx) / MOOD_FILE, payload)
        return entry

    async def list_mood_entries(self, ctx: UserContext, since: Optional[datetime] = None) -> List[MoodEntry]:
        items: List[MoodEntry] = []
        for data in self._read_lines(self._user_dir(ctx) / MOOD_FILE):
            entry = MoodEntry(
                id=data["id"],
                user_id=data["user_id"],
                mood=data["mood"],
                intensity=int(data.get("intensity", 5)),
                created_at=_parse_ts(data["created_at"]),
                note=data.get("note"),
            )
            if since is None or entry.created_at >= since:
                items.append(entry)
        items.sort(key=lambda e: e.created_at)
        return items

    async def delete_all_mood_entries(self, ctx: UserContext) -> None:
        self._unlink(self._user_dir(ctx) / MOOD_FILE)

    # ---- gratitude journal -----------------------------------------

    async def add_gratitude_entry(self, ctx: UserContext, entry: GratitudeEntry) -> GratitudeEntry:
        payload = asdict(entry)
        payload["created_at"] = _ts(entry.created_at)
        self._append_line(self._user_dir(ctx) / GRATITUDE_FILE, payload)
        return entry

    async def list_gratitude_entries(self, ctx: UserContext, limit: int = 20) -> List[GratitudeEntry]:
        items = [
            GratitudeEntry(
                id=data["id"],
                user_id=data["user_id"],
                entry_1=data["entry_1"],
                created_at=_parse_ts(data["created_at"]),
                entry_2=data.get("entry_2"),
                entry_3=data.get("entry_3"),
            )
            for data in self._read_lines(self._user_dir(ctx) / GRATITUDE_FILE)
        ]
        items.sort(key=lambda e: e.created_at, reverse=True)
        return items[:limit]

    async def delete_gratitude_entry(self, ctx: UserContext, entry_id: str) -> None:
        path = self._user_dir(ctx) / GRATITUDE_FILE
        remaining = [data for data in self._read_lines(path) if data.get("id") != entry_id]
        self._rewrite_lines(path, remaining)

    async def delete_all_gratitude_entries(self, ctx: UserContext) -> None:
        self._unlink(self._user_dir(ctx) / GRATITUDE_FILE)

    # ---- saved quotes ----------------------------------------------

    async def add_saved_quote(self, ctx: UserContext, quote: SavedQuote) -> SavedQuote:
        payload = asdict(quote)
        payload["created_at"] = _ts(quote.created_at)
        self._append_line(self._user_dir(ctx) / QUOTES_FILE, payload)
        return quote

    async def list_saved_quotes(self, ctx: UserContext) -> List[SavedQuote]:
        items = [
            SavedQuote(
                id=data["id"],
                user_id=data["user_id"],
                quote=data["quote"],
                created_at=_parse_ts(data["created_at"]),
                author=data.get("author"),
            )
            for data in self._read_lines(self._user_dir(ctx) / QUOTES_FILE)
        ]
        items.sort(key=lambda q: q.created_at)
        return items

    async def delete_all_saved_quotes(self, ctx: UserContext) -> None:
        self._unlink(self._user_dir(ctx) / QUOTES_FILE)

    # ---- helpers ---------------------------------------------------

    def _user_dir(self, ctx: UserContext) -> Path:
        if not _SAFE_ID.match(ctx.user_id or "") or ctx.user_id in {".", ".."}:
            raise ValidationError(code="INVALID_USER_ID", message=repr(ctx.user_id))
        return self._users_root / ctx.user_id

    def _conv_root(self, ctx: UserContext) -> Path:
        return self._user_dir(ctx) / "conversations"

    def _conv_dir(self, ctx: UserContext, conversation_id: str) -> Path:
        if not _SAFE_ID.match(conversation_id or "") or conversation_id in {".", ".."}:
            raise StoreError(code="CONVERSATION_NOT_FOUND", message=repr(conversation_id))
        return self._conv_root(ctx) / conversation_id

    def _get_conversation(self, ctx: UserContext, conversation_id: str) -> Conversation:
        meta_path = self._conv_dir(ctx, conversation_id) / "meta.json"
        try:
            data = json.loads(meta_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise StoreError(code="CONVERSATION_NOT_FOUND", message=conversation_id)
        except (OSError, ValueError) as e:
            raise StoreError(code="STORE_READ_ERROR", message=str(e))
        return self._to_conversation(data)

    def _write_meta(self, cdir: Path, conv: Conversation) -> None:
        meta_path = cdir / "meta.json"
        tmp_path = cdir / f"meta.{uuid4().hex}.json.tmp"
        obj = {
            "id": conv.id,
            "user_id": conv.user_id,
            "title": conv.title,
            "created_at": _ts(conv.created_at),
            "updated_at": _ts(conv.updated_at),
        }
        try:
            tmp_path.write_text(json.dumps(obj, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, meta_path)
        except OSError as e:
            raise StoreError(code="STORE_WRITE_ERROR", message=str(e))

    def _append_line(self, path: Path, payload: Dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=False) + "\n")
        except OSError as e:
            raise StoreError(code="STORE_WRITE_ERROR", message=str(e))

    def _rewrite_lines(self, path: Path, rows: Iterable[Dict[str, Any]]) -> None:
        tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
        try:
            tmp_path.write_text(
                "".join(json.dumps(row, ensure_ascii=False) + "\n" for row in rows),
                encoding="utf-8",
            )
            os.replace(tmp_path, path)
        except OSError as e:
            raise StoreError(code="STORE_WRITE_ERROR", message=str(e))

    @staticmethod
    def _read_lines(path: Path) -> List[Dict[str, Any]]:
        if not path.exists():
            return []
        rows: List[Dict[str, Any]] = []
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StoreError(code="STORE_READ_ERROR", message=str(e))
        for line in lines:
            try:
                data = json.loads(line)
            except ValueError:
                continue
            if isinstance(data, dict):
                rows.append(data)
        return rows

    @staticmethod
    def _unlink(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(code="STORE_DELETE_ERROR", message=str(e))

    @staticmethod
    def _to_conversation(data: Dict[str, Any]) -> Conversation:
        return Conversation(
            id=data["id"],
            user_id=data["user_id"],
            title=data.get("title") or "",
            created_at=_parse_ts(data["created_at"]),
            updated_at=_parse_ts(data["updated_at"]),
        )

    @staticmethod
    def _to_message(data: Dict[str, Any]) -> MessageRecord:
        return MessageRecord(
            id=data["id"],
            conversation_id=data["conversation_id"],
            user_id=data["user_id"],
            role=data["role"],
            content=data.get("content") or "",
            created_at=_parse_ts(data["created_at"]),
            detected_emotion=data.get("detected_emotion"),
        )
