"""
交付物服务层

在 ArtifactRepository 之上提供按会话打开数据库会话的操作，
返回值统一为字典（Artifact.to_dict()），调用方不持有 ORM 对象。

apply_document_version 是"写入新文档版本"的唯一入口：
工具调用路径和流式聊天路径都经过这里，共用同一条清洗与版本规则。
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from resume_agent.db.init_db import get_engine
from resume_agent.exceptions import ArtifactNotFoundError
from resume_agent.models.artifact import ArtifactType
from resume_agent.repositories.artifact_repository import ArtifactRepository
from resume_agent.services.document_sanitizer import DocumentSanitizer, default_sanitizer

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_TITLE = "Resume"


def _serialize(content: Any) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False)


class ArtifactService:
    """
    交付物服务

    使用示例：
        service = ArtifactService(engine)
        created = service.create_document("user-1", 3, document, title="Jane - Modern")
        updated = service.update_document(created["id"], new_document)
        assert updated["version"] == created["version"] + 1
    """

    def __init__(self, engine: Optional[Engine] = None, sanitizer: Optional[DocumentSanitizer] = None):
        """
        Args:
            engine: SQLAlchemy 引擎（可选），默认使用全局引擎
            sanitizer: 文档清洗器（可选）
        """
        self.engine = engine or get_engine()
        self.sanitizer = sanitizer or default_sanitizer

    # ------------------------------------------------------------ 通用交付物

    def create_artifact(
        self,
        user_id: str,
        artifact_type: ArtifactType,
        title: str,
        content: Any,
        conversation_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        创建交付物（version = 1）

        Args:
            content: 字符串原样存储，其它值序列化为 JSON
        """
        with Session(self.engine) as session:
            artifact = ArtifactRepository(session).create(
                user_id=user_id,
                artifact_type=ArtifactType(artifact_type),
                title=title,
                code=_serialize(content),
                conversation_id=conversation_id,
                metadata=metadata,
            )
            logger.info("[ArtifactService] 创建交付物: id=%s type=%s", artifact.id, artifact.type.value)
            return artifact.to_dict()

    def update_artifact(
        self,
        artifact_id: int,
        content: Any,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        更新交付物内容，版本号 +1

        Raises:
            ArtifactNotFoundError: 交付物不存在
        """
        with Session(self.engine) as session:
            artifact = ArtifactRepository(session).update_content(
                artifact_id,
                code=_serialize(content),
                metadata=metadata,
            )
            if artifact is None:
                raise ArtifactNotFoundError(artifact_id)
            logger.info("[ArtifactService] 更新交付物: id=%s version=%s", artifact.id, artifact.version)
            return artifact.to_dict()

    def get_by_id(self, artifact_id: int) -> Optional[Dict[str, Any]]:
        with Session(self.engine) as session:
            artifact = ArtifactRepository(session).get_by_id(artifact_id)
            return artifact.to_dict() if artifact else None

    def list_by_user(self, user_id: str, artifact_type: Optional[ArtifactType] = None) -> List[Dict[str, Any]]:
        with Session(self.engine) as session:
            artifacts = ArtifactRepository(session).get_all_by_user(user_id, artifact_type=artifact_type)
            return [artifact.to_dict() for artifact in artifacts]

    def list_by_conversation(self, conversation_id: int) -> List[Dict[str, Any]]:
        with Session(self.engine) as session:
            artifacts = ArtifactRepository(session).get_by_conversation(conversation_id)
            return [artifact.to_dict() for artifact in artifacts]

    def delete_artifact(self, artifact_id: int) -> bool:
        with Session(self.engine) as session:
            return ArtifactRepository(session).delete(artifact_id)

    # ------------------------------------------------------------ 简历文档

    def get_current_document(self, user_id: str, conversation_id: int) -> Optional[Dict[str, Any]]:
        """
        当前文档：该对话下 updated_at 最新（相同时 id 最大）的 resume 交付物
        """
        with Session(self.engine) as session:
            artifact = ArtifactRepository(session).get_latest_by_conversation(
                conversation_id,
                artifact_type=ArtifactType.RESUME,
                user_id=user_id,
            )
            return artifact.to_dict() if artifact else None

    def create_document(
        self,
        user_id: str,
        conversation_id: int,
        document: Dict[str, Any],
        title: str = DEFAULT_DOCUMENT_TITLE,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """清洗后以 resume 类型创建文档"""
        return self.create_artifact(
            user_id=user_id,
            artifact_type=ArtifactType.RESUME,
            title=title,
            content=self.sanitizer.sanitize(document),
            conversation_id=conversation_id,
            metadata=metadata,
        )

    def update_document(
        self,
        artifact_id: int,
        document: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """清洗后写入新版本"""
        return self.update_artifact(artifact_id, self.sanitizer.sanitize(document), metadata=metadata)

    def apply_document_version(
        self,
        user_id: str,
        conversation_id: int,
        document: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
        title: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        写入新文档版本

        对话已有当前文档时在其上 version + 1（元数据合并），否则创建 version 1 的新文档

        Args:
            user_id: 用户身份标识
            conversation_id: 对话 ID
            document: 新文档
            metadata: 需要合并进元数据的字段（可选）
            title: 新建文档时的标题（可选）

        Returns:
            写入后的交付物字典
        """
        current = self.get_current_document(user_id, conversation_id)
        if current is None:
            return self.create_document(
                user_id,
                conversation_id,
                document,
                title=title or DEFAULT_DOCUMENT_TITLE,
                metadata=dict(metadata or {}),
            )

        merged = dict(current.get("metadata") or {})
        merged.update(metadata or {})
        return self.update_document(current["id"], document, metadata=merged)
