"""
数据库模型模块
导出所有表模型和枚举类型
"""

# 会话域模型
from .conversation import Conversation, DEFAULT_CONVERSATION_TITLE
from .message import Message, MessageRole

# 资产域模型
from .artifact import Artifact, ArtifactType

# 用户画像域模型
from .profile import UserProfile, PROFILE_FIELDS

# 基础模型
from .base import TimestampModel, utc_now

# 定义导出的内容
__all__ = [
    # 会话域
    "Conversation", "DEFAULT_CONVERSATION_TITLE",
    "Message", "MessageRole",
    # 资产域
    "Artifact", "ArtifactType",
    # 用户画像域
    "UserProfile", "PROFILE_FIELDS",
    # 基础模型
    "TimestampModel", "utc_now"
]
