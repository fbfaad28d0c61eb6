"""
资产域模型 - 交付物表
每次内容更新版本号递增，版本号从 1 开始
"""

import json
from typing import Optional, Dict, Any
from sqlmodel import Field, Column, JSON

from enum import Enum

from .base import TimestampModel

class ArtifactType(str, Enum):
    """交付物类型枚举"""
    RESUME = "resume"
    PDF = "pdf"
    CODE = "code"

class Artifact(TimestampModel, table=True):
    """
    交付物表
    核心产出物：结构化文档、导出的 PDF、代码片段

    注意：版本号更新是"读-改-写"，没有 compare-and-swap，
    并发更新同一交付物时可能丢失一次版本递增
    """
    __tablename__ = "artifacts"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 交付物类型枚举，决定 UI 展示方式
    type: ArtifactType = Field(nullable=False)

    # 标题
    title: str = Field(default="", nullable=False)

    # 序列化后的内容（结构化文档 JSON 字符串）
    code: str = Field(default="", nullable=False)

    # 元数据：模板、配色、布局、优化目标、渲染产物地址等
    # SQLAlchemy 声明式类保留了 metadata 属性名，列名仍为 metadata
    artifact_metadata: Optional[Dict[str, Any]] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSON)
    )

    # 归属用户（不透明身份标识）
    user_id: str = Field(index=True, nullable=False)

    # 外键：来源对话
    conversation_id: Optional[int] = Field(default=None, foreign_key="conversations.id", index=True)

    # 版本号：创建为 1，每次内容更新 +1
    version: int = Field(default=1, nullable=False)

    def load_document(self) -> Optional[Dict[str, Any]]:
        """
        反序列化 code 字段

        Returns:
            文档字典，code 不是合法的 JSON 对象时返回 None
        """
        try:
            document = json.loads(self.code)
        except (TypeError, ValueError):
            return None
        return document if isinstance(document, dict) else None

    def to_dict(self) -> Dict[str, Any]:
        """转换为上下文和工具结果使用的普通字典"""
        return {
            "id": self.id,
            "type": self.type.value if isinstance(self.type, ArtifactType) else self.type,
            "title": self.title,
            "code": self.code,
            "metadata": dict(self.artifact_metadata or {}),
            "user_id": self.user_id,
            "conversation_id": self.conversation_id,
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
