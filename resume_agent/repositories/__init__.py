"""
Repository (DAO) 模块
提供数据库操作的抽象层，封装 CRUD 逻辑
"""

from .conversation_repository import ConversationRepository
from .artifact_repository import ArtifactRepository
from .profile_repository import ProfileRepository

__all__ = [
    "ConversationRepository",
    "ArtifactRepository",
    "ProfileRepository"
]
