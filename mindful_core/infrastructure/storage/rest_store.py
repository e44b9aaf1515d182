"""托管数据存储（PostgREST 方言）适配器。

托管存储对每张表暴露 `/<table>` 资源：

- 插入: POST，`Prefer: return=representation` 返回插入后的行。
- 查询: GET，`col=eq.value` 过滤，`order=col.asc|desc`，`limit=n`。
- 更新: PATCH + 过滤条件。
- 删除: DELETE + 过滤条件。

查询、更新、删除请求都带上 `user_id=eq.<owner>` 过滤，插入行里写入 user_id；行级归属由调用方显式传入的
UserContext 决定。任何失败都包装成 StoreError，不做重试。
"""

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from mindful_core.domain.conversation import (
    Conversation,
    GratitudeEntry,
    MessageRecord,
    MoodEntry,
    SavedQuote,
)
from mindful_core.domain.exceptions import StoreError, ValidationError
from mindful_core.domain.models import UserContext

CONVERSATIONS = "conversations"
MESSAGES = "chat_messages"
MOOD_ENTRIES = "mood_entries"
GRATITUDE_ENTRIES = "gratitude_entries"
SAVED_QUOTES = "saved_quotes"


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _parse_ts(value: Any) -> datetime:
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row(obj: Any) -> Dict[str, Any]:
    data = asdict(obj)
    for key, value in data.items():
        if isinstance(value, datetime):
            data[key] = _ts(value)
    return data


class RestWellnessStore:
    """托管存储客户端，实现 WellnessStore 协议。"""

    def __init__(self, settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport
        base_url = getattr(settings, "store_url", None)
        if not base_url:
            raise ValidationError(code="MISSING_STORE_URL", message="STORE_URL not set")
        self._base_url = base_url.rstrip("/")
        self._api_key = getattr(settings, "store_api_key", None) or ""

    # ---- conversations ---------------------------------------------

    async def create_conversation(self, ctx: UserContext, title: str) -> Conversation:
        row = await self._insert(ctx, CONVERSATIONS, {"user_id": ctx.user_id, "title": title})
        return self._to_conversation(row)

    async def list_conversations(self, ctx: UserContext) -> List[Conversation]:
        rows = await self._select(ctx, CONVERSATIONS, order="updated_at.desc")
        return [self._to_conversation(r) for r in rows]

    async def update_conversation(
        self,
        ctx: UserContext,
        conversation_id: str,
        *,
        title: Optional[str] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        if title is not None:
            await self._update(ctx, CONVERSATIONS, {"id": f"eq.{conversation_id}"}, {"title": title})
        if updated_at is not None:
            # lt 过滤保证 updated_at 只前进不后退
            await self._update(
                ctx,
                CONVERSATIONS,
                {"id": f"eq.{conversation_id}", "updated_at": f"lt.{_ts(updated_at)}"},
                {"updated_at": _ts(updated_at)},
            )

    async def delete_conversation(self, ctx: UserContext, conversation_id: str) -> None:
        # 不依赖数据库级联，先删消息再删会话
        await self._delete(ctx, MESSAGES, {"conversation_id": f"eq.{conversation_id}"})
        await self._delete(ctx, CONVERSATIONS, {"id": f"eq.{conversation_id}"})

    async def delete_all_conversations(self, ctx: UserContext) -> None:
        await self._delete(ctx, CONVERSATIONS, {})

    # ---- messages --------------------------------------------------

    async def add_message(self, ctx: UserContext, message: MessageRecord) -> MessageRecord:
        if message.user_id != ctx.user_id:
            raise ValidationError(code="OWNER_MISMATCH", message="message does not belong to the caller")
        row = await self._insert(ctx, MESSAGES, _row(message))
        return self._to_message(row)

    async def list_messages(self, ctx: UserContext, conversation_id: str) -> List[MessageRecord]:
        rows = await self._select(
            ctx,
            MESSAGES,
            filters={"conversation_id": f"eq.{conversation_id}"},
            order="created_at.asc",
        )
        return [self._to_message(r) for r in rows]

    async def delete_all_messages(self, ctx: UserContext) -> None:
        await self._delete(ctx, MESSAGES, {})

    # ---- mood entries ----------------------------------------------

    async def add_mood_entry(self, ctx: UserContext, entry: MoodEntry) -> MoodEntry:
        row = await self._insert(ctx, MOOD_ENTRIES, _row(entry))
        return MoodEntry(
            id=str(row["id"]),
            user_id=row["user_id"],
            mood=row["mood"],
            intensity=int(row.get("intensity", entry.intensity)),
            created_at=_parse_ts(row["created_at"]),
            note=row.get("note"),
        )

    async def list_mood_entries(self, ctx: UserContext, since: Optional[datetime] = None) -> List[MoodEntry]:
        filters = {"created_at": f"gte.{_ts(since)}"} if since else {}
        rows = await self._select(ctx, MOOD_ENTRIES, filters=filters, order="created_at.asc")
        return [
            MoodEntry(
                id=str(r["id"]),
                user_id=r["user_id"],
                mood=r["mood"],
                intensity=int(r.get("intensity", 5)),
                created_at=_parse_ts(r["created_at"]),
                note=r.get("note"),
            )
            for r in rows
        ]

    async def delete_all_mood_entries(self, ctx: UserContext) -> None:
        await self._delete(ctx, MOOD_ENTRIES, {})

    # ---- gratitude journal -----------------------------------------

    async def add_gratitude_entry(self, ctx: UserContext, entry: GratitudeEntry) -> GratitudeEntry:
        row = await self._insert(ctx, GRATITUDE_ENTRIES, _row(entry))
        return self._to_gratitude(row)

    async def list_gratitude_entries(self, ctx: UserContext, limit: int = 20) -> List[GratitudeEntry]:
        rows = await self._select(ctx, GRATITUDE_ENTRIES, order="created_at.desc", limit=limit)
        return [self._to_gratitude(r) for r in rows]

    async def delete_gratitude_entry(self, ctx: UserContext, entry_id: str) -> None:
        await self._delete(ctx, GRATITUDE_ENTRIES, {"id": f"eq.{entry_id}"})

    async def delete_all_gratitude_entries(self, ctx: UserContext) -> None:
        await self._delete(ctx, GRATITUDE_ENTRIES, {})

    # ---- saved quotes ----------------------------------------------

    async def add_saved_quote(self, ctx: UserContext, quote: SavedQuote) -> SavedQuote:
        row = await self._insert(ctx, SAVED_QUOTES, _row(quote))
        return self._to_quote(row)

    async def list_saved_quotes(self, ctx: UserContext) -> List[SavedQuote]:
        rows = await self._select(ctx, SAVED_QUOTES, order="created_at.asc")
        return [self._to_quote(r) for r in rows]

    async def delete_all_saved_quotes(self, ctx: UserContext) -> None:
        await self._delete(ctx, SAVED_QUOTES, {})

    # ---- HTTP helpers ----------------------------------------------

    async def _insert(self, ctx: UserContext, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._request(ctx, "POST", table, json_body=row, prefer="return=representation")
        if isinstance(data, list) and data:
            return data[0]
        if isinstance(data, dict):
            return data
        raise StoreError(code="STORE_WRITE_ERROR", message=f"insert into {table} returned no row", table=table)

    async def _select(
        self,
        ctx: UserContext,
        table: str,
        *,
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"select": "*", **(filters or {})}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        data = await self._request(ctx, "GET", table, params=params)
        if not isinstance(data, list):
            raise StoreError(code="STORE_READ_ERROR", message=f"unexpected response from {table}", table=table)
        return data

    async def _update(
        self,
        ctx: UserContext,
        table: str,
        filters: Dict[str, str],
        values: Dict[str, Any],
    ) -> None:
        await self._request(ctx, "PATCH", table, params=filters, json_body=values)

    async def _delete(self, ctx: UserContext, table: str, filters: Dict[str, str]) -> None:
        await self._request(ctx, "DELETE", table, params=filters)

    async def _request(
        self,
        ctx: UserContext,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        prefer: Optional[str] = None,
    ) -> Any:
        query: Dict[str, Any] = dict(params or {})
        if method != "POST":
            # 行级归属：查询/更新/删除都限定在调用方自己的数据上
            query["user_id"] = f"eq.{ctx.user_id}"
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {ctx.access_token or self._api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._settings.http_timeout,
                transport=self._transport,
                trust_env=False,
            ) as client:
                resp = await client.request(method, f"/{table}", params=query, json=json_body, headers=headers)
        except httpx.HTTPError as e:
            raise StoreError(code="STORE_NETWORK_ERROR", message=str(e) or type(e).__name__, table=table)
        if resp.status_code >= 400:
            raise StoreError(
                code="STORE_API_ERROR",
                message=resp.text,
                http_status=resp.status_code,
                table=table,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise StoreError(code="STORE_READ_ERROR", message=str(e), table=table)

    # ---- row mapping -----------------------------------------------

    @staticmethod
    def _to_conversation(row: Dict[str, Any]) -> Conversation:
        created = _parse_ts(row["created_at"])
        return Conversation(
            id=str(row["id"]),
            user_id=row["user_id"],
            title=row.get("title") or "",
            created_at=created,
            updated_at=_parse_ts(row["updated_at"]) if row.get("updated_at") else created,
        )

    @staticmethod
    def _to_message(row: Dict[str, Any]) -> MessageRecord:
        return MessageRecord(
            id=str(row["id"]),
            conversation_id=str(row["conversation_id"]),
            user_id=row["user_id"],
            role=row["role"],
            content=row.get("content") or "",
            created_at=_parse_ts(row["created_at"]),
            detected_emotion=row.get("detected_emotion"),
        )

    @staticmethod
    def _to_gratitude(row: Dict[str, Any]) -> GratitudeEntry:
        return GratitudeEntry(
            id=str(row["id"]),
            user_id=row["user_id"],
            entry_1=row["entry_1"],
            created_at=_parse_ts(row["created_at"]),
            entry_2=row.get("entry_2"),
            entry_3=row.get("entry_3"),
        )

    @staticmethod
    def _to_quote(row: Dict[str, Any]) -> SavedQuote:
        return SavedQuote(
            id=str(row["id"]),
            user_id=row["user_id"],
            quote=row["quote"],
            created_at=_parse_ts(row["created_at"]),
            author=row.get("author"),
        )
