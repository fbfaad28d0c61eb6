"""
对话上下文管理

按对话组装上下文（历史消息、交付物、当前文档、推断画像、最近输入），
首次访问时从数据库加载，之后走内存缓存（cache-aside）。

缓存约定：
- 同一对话假定单写者，缓存是进程内两次调用之间唯一的事实来源
- 不与其它进程的并发写入对账；需要重新加载时显式调用 invalidate
- 更新时先构造新对象，全部步骤完成后才替换缓存，失败不会留下半更新的状态
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from resume_agent.agent.state import ConversationContext, get_empty_context
from resume_agent.db.init_db import get_engine
from resume_agent.models.artifact import ArtifactType
from resume_agent.models.base import utc_now
from resume_agent.models.message import MessageRole
from resume_agent.repositories.artifact_repository import ArtifactRepository
from resume_agent.repositories.conversation_repository import ConversationRepository
from resume_agent.repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)

RECENT_INPUTS_LIMIT = 10

# 用户原话中的偏好线索，后出现的规则覆盖前面的
TEMPLATE_HINTS = ("professional", "creative", "modern")
TARGET_ROLE_HINTS = ("software engineer", "product manager", "data analyst")


def _is_resume(artifact: Optional[Dict[str, Any]]) -> bool:
    return bool(artifact) and artifact.get("type") == ArtifactType.RESUME.value


def _successful_artifacts(tool_results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    artifacts = []
    for record in tool_results or []:
        if not record.get("success"):
            continue
        artifact = (record.get("result") or {}).get("artifact")
        if artifact:
            artifacts.append(artifact)
    return artifacts


def _summarize_tool_results(tool_results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """历史记录里只保留调用、成败和交付物 ID，不带渲染出的二进制"""
    summary = []
    for record in tool_results or []:
        artifact = (record.get("result") or {}).get("artifact") or {}
        summary.append({
            "tool_call": record.get("tool_call"),
            "success": bool(record.get("success")),
            "error": record.get("error"),
            "artifact_id": artifact.get("id"),
        })
    return summary


class ContextManager:
    """
    对话上下文管理器

    使用示例：
        manager = ContextManager(engine)
        context = manager.get_context(3)
        context = manager.update_context(3, {
            "user_input": "Make it more professional",
            "agent_type": "designer",
            "tool_results": results,
        })
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or get_engine()
        self._cache: Dict[int, ConversationContext] = {}

    # ------------------------------------------------------------ 读取

    def get_context(self, conversation_id: int) -> ConversationContext:
        """
        获取对话上下文（优先命中缓存）

        加载失败时返回空上下文，不抛异常，也不写入缓存

        Args:
            conversation_id: 对话 ID

        Returns:
            ConversationContext
        """
        cached = self._cache.get(conversation_id)
        if cached is not None:
            logger.debug("[ContextManager] 缓存命中: conversation=%s", conversation_id)
            return cached

        try:
            context = self._load_context(conversation_id)
        except Exception as e:
            logger.error("[ContextManager] 加载上下文失败 (conversation=%s): %s", conversation_id, e)
            return get_empty_context()

        self._cache[conversation_id] = context
        logger.info(
            "[ContextManager] 上下文已加载: conversation=%s, 消息 %d 条, 交付物 %d 个",
            conversation_id, len(context["conversation_history"]), len(context["artifacts"])
        )
        return context

    def _load_context(self, conversation_id: int) -> ConversationContext:
        with Session(self.engine) as session:
            messages = [
                message.to_dict()
                for message in ConversationRepository(session).get_messages_by_conversation_id(conversation_id)
            ]
            artifacts = [
                artifact.to_dict()
                for artifact in ArtifactRepository(session).get_by_conversation(conversation_id)
            ]
            profile = ProfileRepository(session).get_by_conversation(conversation_id)
            profile_data = profile.to_dict() if profile else None

        # artifacts 已按 updated_at、id 倒序，第一个 resume 即当前文档
        resume_versions = [artifact for artifact in artifacts if _is_resume(artifact)]
        return {
            "conversation_history": messages,
            "artifacts": artifacts,
            "current_resume": resume_versions[0] if resume_versions else None,
            "user_profile": profile_data,
            "previous_inputs": self.extract_user_inputs(messages),
            "resume_versions": resume_versions,
            "last_activity": utc_now(),
            "last_agent_type": None,
        }

    # ------------------------------------------------------------ 更新

    def update_context(self, conversation_id: int, update: Dict[str, Any]) -> ConversationContext:
        """
        合并一轮编排的结果

        - 追加一条 system 历史记录，内容为本轮摘要
        - 成功结果中的交付物并入列表，resume 类型的成为当前文档
        - 推断画像合并写入数据库（失败只记日志）

        Args:
            conversation_id: 对话 ID
            update: {user_input, agent_type, tool_results, timestamp}

        Returns:
            更新后的上下文
        """
        context = self.get_context(conversation_id)
        timestamp = update.get("timestamp") or utc_now()
        tool_results = update.get("tool_results") or []

        entry = {
            "role": MessageRole.SYSTEM.value,
            "text": json.dumps({
                "user_input": update.get("user_input"),
                "agent_type": update.get("agent_type"),
                "tool_results": _summarize_tool_results(tool_results),
                "timestamp": timestamp,
            }, ensure_ascii=False, default=str),
            "created_at": timestamp,
        }

        updated: ConversationContext = dict(context)
        updated["conversation_history"] = list(context.get("conversation_history", [])) + [entry]
        updated["last_activity"] = timestamp
        updated["last_agent_type"] = update.get("agent_type")

        for artifact in _successful_artifacts(tool_results):
            updated = self._merge_artifact(updated, artifact)

        self._update_user_profile(conversation_id, update, updated)

        self._cache[conversation_id] = updated
        return updated

    def set_current_document(self, conversation_id: int, artifact: Dict[str, Any]) -> ConversationContext:
        """
        把新写入的文档版本设为当前文档

        工具路径（经 update_context）和流式聊天路径共用的上下文变更入口
        """
        context = self.get_context(conversation_id)
        updated = self._merge_artifact(dict(context), artifact)
        updated["last_activity"] = utc_now()
        self._cache[conversation_id] = updated
        return updated

    def append_message(self, conversation_id: int, message: Dict[str, Any]) -> None:
        """已缓存时把新落库的消息追加到历史；未缓存时下次加载自然包含它"""
        context = self._cache.get(conversation_id)
        if context is None:
            return
        updated: ConversationContext = dict(context)
        updated["conversation_history"] = list(context.get("conversation_history", [])) + [message]
        updated["previous_inputs"] = self.extract_user_inputs(updated["conversation_history"])
        updated["last_activity"] = utc_now()
        self._cache[conversation_id] = updated

    @staticmethod
    def _merge_artifact(context: ConversationContext, artifact: Dict[str, Any]) -> ConversationContext:
        """同 ID 的旧记录被替换，新记录放在最前"""
        artifact_id = artifact.get("id")
        context["artifacts"] = [artifact] + [
            item for item in context.get("artifacts", []) if item.get("id") != artifact_id
        ]
        if _is_resume(artifact):
            context["current_resume"] = artifact
            context["resume_versions"] = [artifact] + [
                item for item in context.get("resume_versions", []) if item.get("id") != artifact_id
            ]
        return context

    def _update_user_profile(
        self,
        conversation_id: int,
        update: Dict[str, Any],
        context: ConversationContext
    ) -> None:
        profile_data = self.extract_profile_data(update)
        if not profile_data:
            return
        try:
            with Session(self.engine) as session:
                profile = ProfileRepository(session).upsert_for_conversation(conversation_id, profile_data)
                context["user_profile"] = profile.to_dict()
        except Exception as e:
            logger.error("[ContextManager] 画像写入失败 (conversation=%s): %s", conversation_id, e)

    # ------------------------------------------------------------ 推断

    @staticmethod
    def extract_profile_data(update: Dict[str, Any]) -> Dict[str, Any]:
        """
        从本轮结果推断画像字段

        结构化来源：成功的 create_resume_structure 调用的 personalInfo；
        文本来源：用户原话中的模板偏好和目标职位关键词。
        只返回有值的字段
        """
        profile: Dict[str, Any] = {}

        for record in update.get("tool_results") or []:
            tool_call = record.get("tool_call") or {}
            if not record.get("success") or tool_call.get("name") != "create_resume_structure":
                continue
            personal_info = (tool_call.get("parameters") or {}).get("personalInfo") or {}
            for field in ("name", "title", "contact"):
                if personal_info.get(field):
                    profile[field] = personal_info[field]

        text = (update.get("user_input") or "").lower()
        for template in TEMPLATE_HINTS:
            if template in text:
                profile["preferred_template"] = template
        for role in TARGET_ROLE_HINTS:
            if role in text:
                profile["target_role"] = role

        return profile

    @staticmethod
    def extract_user_inputs(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """最近 10 条用户输入 {text, timestamp}，按时间正序"""
        inputs = [
            {"text": message.get("text"), "timestamp": message.get("created_at")}
            for message in messages
            if message.get("role") == MessageRole.USER.value
        ]
        return inputs[-RECENT_INPUTS_LIMIT:]

    # ------------------------------------------------------------ 缓存

    def clear_context(self, conversation_id: int) -> None:
        self._cache.pop(conversation_id, None)

    def invalidate(self, conversation_id: int) -> None:
        """丢弃缓存，下次访问时从数据库重新加载"""
        self.clear_context(conversation_id)

    def is_cached(self, conversation_id: int) -> bool:
        return conversation_id in self._cache

    # ------------------------------------------------------------ 查询

    def get_resume_history(self, conversation_id: int) -> List[Dict[str, Any]]:
        """文档版本列表（最新在前）"""
        context = self.get_context(conversation_id)
        history = []
        for resume in context.get("resume_versions", []):
            metadata = resume.get("metadata") or {}
            history.append({
                "id": resume.get("id"),
                "version": resume.get("version"),
                "title": resume.get("title"),
                "template": metadata.get("template"),
                "updated_at": resume.get("updated_at"),
                "changes": metadata.get("lastUpdate"),
            })
        return history

    def get_conversation_summary(self, conversation_id: int) -> Dict[str, Any]:
        context = self.get_context(conversation_id)
        current = context.get("current_resume") or {}
        return {
            "total_messages": len(context.get("conversation_history", [])),
            "user_inputs": len(context.get("previous_inputs", [])),
            "resume_versions": len(context.get("resume_versions", [])),
            "current_template": (current.get("metadata") or {}).get("template"),
            "last_activity": context.get("last_activity"),
            "user_profile": context.get("user_profile"),
        }
