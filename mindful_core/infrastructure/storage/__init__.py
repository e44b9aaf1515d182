"""持久化实现：本地 JSON 文件存储与托管 REST 存储。"""

from mindful_core.config.settings import settings
from mindful_core.domain.conversation import WellnessStore
from mindful_core.infrastructure.storage.json_store import JsonWellnessStore
from mindful_core.infrastructure.storage.rest_store import RestWellnessStore


def create_store(backend: str | None = None) -> WellnessStore:
    """根据配置创建存储实例，默认取 settings.store_backend。"""

    name = (backend or settings.store_backend).lower()
    if name == "rest":
        return RestWellnessStore(settings)
    return JsonWellnessStore(root=settings.storage_root)


__all__ = ["JsonWellnessStore", "RestWellnessStore", "create_store"]
