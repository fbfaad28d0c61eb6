"""
交付物 Repository
artifacts 表的读写；简历文档每次改动在同一行上递增 version
"""

from typing import Any, Dict, List, Optional

from sqlmodel import Session, col, select
from sqlmodel.sql.expression import SelectOfScalar

from resume_agent.models.artifact import Artifact, ArtifactType
from resume_agent.models.base import utc_now


class ArtifactRepository:
    """artifacts 表数据访问对象，调用方负责 Session 的生命周期"""

    def __init__(self, session: Session):
        self.session = session

    def _save(self, artifact: Artifact) -> Artifact:
        self.session.add(artifact)
        self.session.commit()
        self.session.refresh(artifact)
        return artifact

    @staticmethod
    def _newest_first(
        statement: SelectOfScalar[Artifact],
        artifact_type: Optional[ArtifactType],
        user_id: Optional[str],
    ) -> SelectOfScalar[Artifact]:
        # updated_at 相同时 id 大者在前
        if artifact_type is not None:
            statement = statement.where(Artifact.type == artifact_type)
        if user_id is not None:
            statement = statement.where(Artifact.user_id == user_id)
        return statement.order_by(col(Artifact.updated_at).desc(), col(Artifact.id).desc())

    def create(
        self,
        user_id: str,
        artifact_type: ArtifactType,
        title: str,
        code: str,
        conversation_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Artifact:
        """
        新建交付物，version 从 1 开始

        Args:
            user_id: 用户身份标识
            artifact_type: 交付物类型
            title: 标题
            code: 已序列化的内容
            conversation_id: 来源对话（可选）
            metadata: 元数据（可选）
        """
        return self._save(Artifact(
            type=artifact_type,
            title=title,
            code=code,
            artifact_metadata=dict(metadata or {}),
            user_id=user_id,
            conversation_id=conversation_id,
            version=1,
        ))

    def get_by_id(self, artifact_id: int) -> Optional[Artifact]:
        return self.session.get(Artifact, artifact_id)

    def get_all_by_user(self, user_id: str, artifact_type: Optional[ArtifactType] = None) -> List[Artifact]:
        """用户的全部交付物，最近更新的在前"""
        statement = self._newest_first(select(Artifact), artifact_type, user_id)
        return list(self.session.exec(statement).all())

    def get_by_conversation(
        self,
        conversation_id: int,
        artifact_type: Optional[ArtifactType] = None,
        user_id: Optional[str] = None
    ) -> List[Artifact]:
        """对话产生的交付物，最近更新的在前"""
        statement = select(Artifact).where(Artifact.conversation_id == conversation_id)
        statement = self._newest_first(statement, artifact_type, user_id)
        return list(self.session.exec(statement).all())

    def get_latest_by_conversation(
        self,
        conversation_id: int,
        artifact_type: ArtifactType = ArtifactType.RESUME,
        user_id: Optional[str] = None
    ) -> Optional[Artifact]:
        """
        对话的当前文档：updated_at 最大，其次 id 最大

        Returns:
            Artifact 对象，没有该类型交付物时返回 None
        """
        statement = select(Artifact).where(Artifact.conversation_id == conversation_id)
        statement = self._newest_first(statement, artifact_type, user_id).limit(1)
        return self.session.exec(statement).first()

    def update_content(
        self,
        artifact_id: int,
        code: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[Artifact]:
        """
        写入新内容，version + 1

        先读后写，没有 compare-and-swap：同一交付物的并发更新可能少记一次版本

        Args:
            artifact_id: 交付物 ID
            code: 新的序列化内容
            metadata: 新元数据，None 时保留原值

        Returns:
            更新后的 Artifact，不存在时返回 None
        """
        artifact = self.get_by_id(artifact_id)
        if artifact is None:
            return None

        artifact.code = code
        if metadata is not None:
            artifact.artifact_metadata = dict(metadata)
        artifact.version = (artifact.version or 0) + 1
        artifact.updated_at = utc_now()
        return self._save(artifact)

    def delete(self, artifact_id: int) -> bool:
        """删除交付物，不存在时返回 False"""
        artifact = self.get_by_id(artifact_id)
        if artifact is None:
            return False
        self.session.delete(artifact)
        self.session.commit()
        return True
