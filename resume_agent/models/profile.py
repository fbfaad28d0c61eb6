"""
用户画像域模型 - 推断画像表
每个对话一行，字段由工具参数和用户原话中的关键词推断
"""

from typing import Optional, Dict, Any
from sqlmodel import Field, Column, JSON

from .base import TimestampModel

# 可合并更新的画像字段
PROFILE_FIELDS = ("name", "title", "contact", "preferred_template", "target_role")


class UserProfile(TimestampModel, table=True):
    """
    推断画像表
    合并写入：空值永远不会覆盖已有值
    """
    __tablename__ = "user_profiles"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 外键：对话 ID，每个对话只有一份画像
    conversation_id: int = Field(foreign_key="conversations.id", unique=True, index=True, nullable=False)

    name: Optional[str] = Field(default=None)
    title: Optional[str] = Field(default=None)

    # 联系方式 JSON（phone, email 等）
    contact: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    preferred_template: Optional[str] = Field(default=None)
    target_role: Optional[str] = Field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        """转换为上下文使用的普通字典"""
        data = {field: getattr(self, field) for field in PROFILE_FIELDS}
        data["conversation_id"] = self.conversation_id
        data["updated_at"] = self.updated_at
        return data
