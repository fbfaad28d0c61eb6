"""
对话管理 Repository
提供 conversations 和 messages 的增删改查操作
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Any

from sqlmodel import Session, select, col

from resume_agent.models.conversation import Conversation, DEFAULT_CONVERSATION_TITLE
from resume_agent.models.message import Message, MessageRole
from resume_agent.models.artifact import Artifact
from resume_agent.models.profile import UserProfile
from resume_agent.models.base import utc_now

logger = logging.getLogger(__name__)


def _as_aware(value: datetime) -> datetime:
    """SQLite 读出的时间不带时区，统一按 UTC 处理"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ConversationRepository:
    """
    对话管理数据访问对象
    封装所有与 conversations 和 messages 表相关的数据库操作
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    # ==================== Conversation 操作 ====================

    def create_conversation(
        self,
        user_id: str,
        title: str = DEFAULT_CONVERSATION_TITLE
    ) -> Conversation:
        """
        创建新对话

        Args:
            user_id: 用户身份标识
            title: 对话标题

        Returns:
            创建的 Conversation 对象
        """
        conversation = Conversation(user_id=user_id, title=title)
        self.session.add(conversation)
        self.session.commit()
        self.session.refresh(conversation)
        return conversation

    def get_conversation_by_id(self, conversation_id: int) -> Optional[Conversation]:
        """
        根据 ID 获取对话

        Args:
            conversation_id: 对话 ID

        Returns:
            Conversation 对象，不存在则返回 None
        """
        return self.session.get(Conversation, conversation_id)

    def get_all_conversations_by_user(
        self,
        user_id: str,
        limit: Optional[int] = None
    ) -> List[Conversation]:
        """
        获取用户的所有对话列表（按更新时间倒序）

        Args:
            user_id: 用户身份标识
            limit: 限制返回数量（可选）

        Returns:
            Conversation 对象列表，按 updated_at 倒序排列
        """
        statement = select(Conversation).where(
            Conversation.user_id == user_id
        ).order_by(col(Conversation.updated_at).desc(), col(Conversation.id).desc())

        if limit:
            statement = statement.limit(limit)

        return self.session.exec(statement).all()

    def update_conversation_title(
        self,
        conversation_id: int,
        title: str
    ) -> Optional[Conversation]:
        """
        更新对话标题

        Args:
            conversation_id: 对话 ID
            title: 新的标题

        Returns:
            更新后的 Conversation 对象，不存在则返回 None
        """
        conversation = self.get_conversation_by_id(conversation_id)
        if conversation:
            conversation.title = title
            self.session.add(conversation)
            self.session.commit()
            self.session.refresh(conversation)
        return conversation

    def touch_conversation(self, conversation_id: int) -> Optional[Conversation]:
        """
        更新对话的 updated_at 时间戳

        每次有新消息时调用，确保对话列表按最新活动时间排序正确
        """
        conversation = self.get_conversation_by_id(conversation_id)
        if conversation:
            conversation.updated_at = utc_now()
            self.session.add(conversation)
            self.session.commit()
            self.session.refresh(conversation)
        return conversation

    def delete_conversation(self, conversation_id: int) -> bool:
        """
        删除对话（级联删除消息、交付物和画像）

        Args:
            conversation_id: 对话 ID

        Returns:
            删除成功返回 True，对话不存在返回 False
        """
        conversation = self.get_conversation_by_id(conversation_id)
        if not conversation:
            return False

        for model in (Message, Artifact, UserProfile):
            statement = select(model).where(model.conversation_id == conversation_id)
            for row in self.session.exec(statement).all():
                self.session.delete(row)

        self.session.delete(conversation)
        self.session.commit()
        return True

    def ensure_conversation_exists(
        self,
        user_id: str,
        conversation_id: Optional[int] = None,
        title: str = DEFAULT_CONVERSATION_TITLE
    ) -> Conversation:
        """
        确保对话存在（懒加载创建逻辑）

        首次登录或"新建对话"时没有可用对话，此时创建一个

        Args:
            user_id: 用户身份标识
            conversation_id: 已有对话 ID（可选）
            title: 新建时使用的标题

        Returns:
            Conversation 对象（已存在的或新创建的）
        """
        if conversation_id is not None:
            existing = self.get_conversation_by_id(conversation_id)
            if existing:
                return existing

        conversation = self.create_conversation(user_id=user_id, title=title)
        logger.info("[ConversationRepository] 新对话创建成功 (ID: %s)", conversation.id)
        return conversation

    # ==================== Message 操作 ====================

    def create_message(
        self,
        conversation_id: int,
        role: MessageRole,
        text: str,
        resume_data: Optional[Dict[str, Any]] = None
    ) -> Message:
        """
        创建新消息

        保证同一对话内 created_at 严格递增：时钟回拨或同一微秒内
        连续写入时，新消息时间设为最新消息时间 + 1 微秒

        Args:
            conversation_id: 对话 ID
            role: 消息角色枚举
            text: 消息内容
            resume_data: 文档快照（可选）

        Returns:
            创建的 Message 对象
        """
        created_at = utc_now()
        latest = self._get_latest_message(conversation_id)
        if latest is not None:
            latest_at = _as_aware(latest.created_at)
            if created_at <= latest_at:
                created_at = latest_at + timedelta(microseconds=1)

        message = Message(
            conversation_id=conversation_id,
            role=role,
            text=text,
            resume_data=resume_data,
            created_at=created_at,
            updated_at=created_at
        )
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)
        return message

    def get_messages_by_conversation_id(
        self,
        conversation_id: int,
        limit: Optional[int] = None
    ) -> List[Message]:
        """
        获取对话的所有消息（按创建时间正序）

        Args:
            conversation_id: 对话 ID
            limit: 限制返回数量（可选）

        Returns:
            Message 对象列表，按 created_at 正序排列
        """
        statement = select(Message).where(
            Message.conversation_id == conversation_id
        ).order_by(col(Message.created_at).asc(), col(Message.id).asc())

        if limit:
            statement = statement.limit(limit)

        return self.session.exec(statement).all()

    def get_message_by_id(self, message_id: int) -> Optional[Message]:
        """根据 ID 获取消息"""
        return self.session.get(Message, message_id)

    def _get_latest_message(self, conversation_id: int) -> Optional[Message]:
        statement = select(Message).where(
            Message.conversation_id == conversation_id
        ).order_by(col(Message.created_at).desc(), col(Message.id).desc()).limit(1)
        return self.session.exec(statement).first()
