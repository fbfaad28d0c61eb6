"""
聊天服务层

封装流式聊天的一轮对话：
1. 会话容器保证：对话不存在时按 "New Resume" 创建
2. 用户消息立即存库，流式生成过程中只向外输出可见的动作日志
3. 流结束后从完整文本提取文档，经统一入口写入新版本
4. 助手消息连同文档快照存库，并刷新对话的 updated_at
"""

import json
import logging
from typing import Any, Dict, Generator, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from resume_agent.agent.generation import generate_resume_design_stream
from resume_agent.db.init_db import get_engine
from resume_agent.exceptions import TurnInProgressError
from resume_agent.models.conversation import DEFAULT_CONVERSATION_TITLE
from resume_agent.models.message import MessageRole
from resume_agent.repositories.conversation_repository import ConversationRepository
from resume_agent.services.artifact_service import ArtifactService
from resume_agent.services.context_manager import ContextManager
from resume_agent.services.stream_parser import StreamAccumulator, extract_json_from_response

logger = logging.getLogger(__name__)


def _conversation_dict(conversation) -> Dict[str, Any]:
    return {
        "id": conversation.id,
        "title": conversation.title,
        "user_id": conversation.user_id,
        "created_at": conversation.created_at,
        "updated_at": conversation.updated_at,
    }


class ChatService:
    """
    聊天服务类

    核心职责：
    1. 初始化时确保对话存在（懒加载）
    2. 提供流式发送消息接口（自动存储 + 生成 + 文档落版本 + 更新对话时间）
    3. 对话列表、新建、删除与历史快照预览

    使用示例：
        service = ChatService(user_id="user-1", conversation_id=3)
        for visible_text in service.send_message_stream("Add my internship at Acme"):
            render(visible_text)
    """

    def __init__(
        self,
        user_id: str,
        conversation_id: Optional[int] = None,
        engine: Optional[Engine] = None,
        llm: Any = None,
        artifact_service: Optional[ArtifactService] = None,
        context_manager: Optional[ContextManager] = None
    ):
        """
        初始化服务，完成会话容器保证

        Args:
            user_id: 认证服务提供的用户身份标识
            conversation_id: 已有对话 ID（可选），不存在时新建
            engine: SQLAlchemy 引擎（可选）
            llm: 聊天模型（可选），默认延迟创建
            artifact_service: 交付物服务（可选）
            context_manager: 上下文管理器（可选）
        """
        self.user_id = user_id
        self.engine = engine or get_engine()
        self.llm = llm
        self.artifact_service = artifact_service or ArtifactService(self.engine)
        self.context_manager = context_manager or ContextManager(self.engine)
        self.is_busy = False

        with Session(self.engine) as session:
            conversation = ConversationRepository(session).ensure_conversation_exists(
                user_id=user_id,
                conversation_id=conversation_id,
            )
            self.conversation_id = conversation.id

        logger.info("[ChatService] 对话就绪: user=%s, conversation=%s", user_id, self.conversation_id)

    # ------------------------------------------------------------ 内部

    def _save_message(
        self,
        role: MessageRole,
        text: str,
        resume_data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """消息存库、刷新对话时间，并同步到上下文缓存"""
        with Session(self.engine) as session:
            repo = ConversationRepository(session)
            message = repo.create_message(
                conversation_id=self.conversation_id,
                role=role,
                text=text,
                resume_data=resume_data,
            )
            repo.touch_conversation(self.conversation_id)
            data = message.to_dict()
        self.context_manager.append_message(self.conversation_id, data)
        return data

    def _current_document(self) -> Optional[Dict[str, Any]]:
        current = self.context_manager.get_context(self.conversation_id).get("current_resume")
        if not current:
            return None
        try:
            document = json.loads(current["code"])
        except (TypeError, ValueError):
            logger.warning("[ChatService] 当前文档不是合法 JSON，按无文档处理")
            return None
        return document if isinstance(document, dict) else None

    # ------------------------------------------------------------ 流式对话

    def send_message_stream(self, user_text: str, resume_text: str = "") -> Generator[str, None, None]:
        """
        发送消息并流式获取回复

        流程：
        1. 用户消息立即存库
        2. 流式生成，每收到一块就输出当前可见文本（标记之前的动作日志）
        3. 从完整文本提取文档，有则写入新版本并设为当前文档
        4. 助手消息存库（有文档时附带快照）
        出错时输出一条 "Error: <原因>. Please try again." 替换正在生成的消息

        Args:
            user_text: 用户输入
            resume_text: 原始简历文本（可选）

        Yields:
            str: 助手消息的最新完整可见文本（每次替换，不是增量）

        Raises:
            TurnInProgressError: 上一轮尚未结束
        """
        normalized = (user_text or "").strip()
        if not normalized:
            return
        if self.is_busy:
            raise TurnInProgressError("a turn is already in progress for this conversation")

        self.is_busy = True
        try:
            self._save_message(MessageRole.USER, normalized)
            logger.info("[ChatService] 用户消息已存库: conversation=%s", self.conversation_id)

            accumulator = StreamAccumulator()
            last_yielded = None
            stream = generate_resume_design_stream(
                normalized,
                resume_text,
                self._current_document(),
                llm=self.llm,
            )
            for chunk in stream:
                visible_text = accumulator.feed(chunk)
                if visible_text != last_yielded:
                    last_yielded = visible_text
                    yield visible_text

            final_text = accumulator.final_visible_text
            document = extract_json_from_response(accumulator.full_text)

            resume_data = None
            if document is not None:
                artifact = self.artifact_service.apply_document_version(
                    self.user_id,
                    self.conversation_id,
                    document,
                    metadata={"source": "chat"},
                )
                self.context_manager.set_current_document(self.conversation_id, artifact)
                resume_data = json.loads(artifact["code"])
                logger.info(
                    "[ChatService] 文档已更新: artifact=%s version=%s",
                    artifact["id"], artifact["version"]
                )

            self._save_message(MessageRole.ASSISTANT, final_text, resume_data=resume_data)
            logger.info(
                "[ChatService] 本轮结束: %d 块, %s",
                accumulator.chunk_count, "含文档" if resume_data else "纯聊天"
            )

            if final_text != last_yielded:
                yield final_text

        except Exception as e:
            logger.error("[ChatService] 流式生成失败: %s", e)
            yield f"Error: {e}. Please try again."

        finally:
            self.is_busy = False

    # ------------------------------------------------------------ 对话管理

    def list_conversations(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """当前用户的对话列表（updated_at 倒序）"""
        with Session(self.engine) as session:
            conversations = ConversationRepository(session).get_all_conversations_by_user(self.user_id, limit)
            return [_conversation_dict(conversation) for conversation in conversations]

    def create_conversation(self, title: str = DEFAULT_CONVERSATION_TITLE) -> Dict[str, Any]:
        """新建对话并切换过去"""
        with Session(self.engine) as session:
            conversation = ConversationRepository(session).create_conversation(self.user_id, title)
            self.conversation_id = conversation.id
            return _conversation_dict(conversation)

    def delete_conversation(self, conversation_id: int) -> bool:
        """删除对话（级联删除消息、交付物和画像）并丢弃其上下文缓存"""
        with Session(self.engine) as session:
            deleted = ConversationRepository(session).delete_conversation(conversation_id)
        self.context_manager.invalidate(conversation_id)
        return deleted

    def get_messages(self) -> List[Dict[str, Any]]:
        with Session(self.engine) as session:
            messages = ConversationRepository(session).get_messages_by_conversation_id(self.conversation_id)
            return [message.to_dict() for message in messages]

    def preview_document(self, message_id: int) -> Optional[Dict[str, Any]]:
        """
        回看某条消息附带的文档快照，不写库、不改变当前文档

        Returns:
            文档快照，消息不存在、不属于当前对话或没有快照时返回 None
        """
        with Session(self.engine) as session:
            message = ConversationRepository(session).get_message_by_id(message_id)
            if message is None or message.conversation_id != self.conversation_id:
                return None
            return message.resume_data
