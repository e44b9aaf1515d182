from mindful_core.domain.conversation import WellnessStore
from mindful_core.domain.models import UserContext
from mindful_core.infrastructure.logging.logger import logger


async def clear_user_data(store: WellnessStore, ctx: UserContext) -> None:
    """删除当前用户的全部数据。消息先于会话删除。"""

    await store.delete_all_messages(ctx)
    await store.delete_all_conversations(ctx)
    await store.delete_all_mood_entries(ctx)
    await store.delete_all_gratitude_entries(ctx)
    await store.delete_all_saved_quotes(ctx)
    logger.info("User data cleared", extra={"extra": {"user_id": ctx.user_id}})
