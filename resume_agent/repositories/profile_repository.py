"""
推断画像 Repository
提供 user_profiles 的查询与合并写入操作
"""

from typing import Optional, Dict, Any

from sqlmodel import Session, select

from resume_agent.models.profile import UserProfile, PROFILE_FIELDS
from resume_agent.models.base import utc_now


class ProfileRepository:
    """
    推断画像数据访问对象
    封装所有与 user_profiles 表相关的数据库操作
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    def get_by_conversation(self, conversation_id: int) -> Optional[UserProfile]:
        """
        获取对话的画像

        Args:
            conversation_id: 对话 ID

        Returns:
            UserProfile 对象，不存在则返回 None
        """
        statement = select(UserProfile).where(UserProfile.conversation_id == conversation_id)
        return self.session.exec(statement).first()

    def upsert_for_conversation(
        self,
        conversation_id: int,
        profile_data: Dict[str, Any]
    ) -> UserProfile:
        """
        合并写入画像（不存在则创建）

        只写入值不为 None 的已知字段，已有值永远不会被空值覆盖

        Args:
            conversation_id: 对话 ID
            profile_data: 画像字段字典，未知字段被忽略

        Returns:
            更新或创建的 UserProfile 对象
        """
        profile = self.get_by_conversation(conversation_id)
        if profile is None:
            profile = UserProfile(conversation_id=conversation_id)

        for field in PROFILE_FIELDS:
            value = profile_data.get(field)
            if value is not None:
                setattr(profile, field, value)

        profile.updated_at = utc_now()
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def delete_by_conversation(self, conversation_id: int) -> bool:
        """
        删除对话的画像

        Returns:
            删除成功返回 True，画像不存在返回 False
        """
        profile = self.get_by_conversation(conversation_id)
        if profile:
            self.session.delete(profile)
            self.session.commit()
            return True
        return False
