"""领域层模型与协议。

包含：
- models: 请求用的 ChatMessage / ChatRequest 以及情绪、角色等枚举。
- conversation: 会话、消息、心情、日记、收藏语录的存储模型及 Store 抽象。
- exceptions: 业务异常类型定义。
"""
