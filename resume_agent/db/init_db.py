"""
数据库初始化
创建引擎并建表（conversations / messages / artifacts / user_profiles）

环境变量：
    DATABASE_PATH: SQLite 文件路径，相对路径按项目根目录解析，默认 database.db
    DATABASE_ECHO: 设为 1 / true 时打印 SQL
"""

import logging
import os
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

# 注册全部表到 SQLModel.metadata
from resume_agent.models import Artifact, Conversation, Message, UserProfile  # noqa: F401

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_DATABASE_FILE = "database.db"


def get_database_url() -> str:
    """由 DATABASE_PATH 得到 sqlite URL（绝对路径）"""
    db_path = Path(os.environ.get("DATABASE_PATH", DEFAULT_DATABASE_FILE))
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path
    return f"sqlite:///{db_path}"


def _echo_enabled() -> bool:
    return os.environ.get("DATABASE_ECHO", "").lower() in ("1", "true", "yes")


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    创建数据库引擎

    Args:
        database_url: 连接 URL（可选），默认取 get_database_url()

    Returns:
        SQLAlchemy 引擎；同一引擎可被多个服务的 Session 共享
    """
    return create_engine(
        database_url or get_database_url(),
        echo=_echo_enabled(),
        # 流式对话和服务可能在不同线程里使用同一连接池
        connect_args={"check_same_thread": False},
    )


def create_tables(engine: Engine) -> None:
    """按已注册的模型建表，已存在的表保持不变"""
    SQLModel.metadata.create_all(engine)
    logger.info(
        "[init_db] 数据表就绪: %s (%s)",
        ", ".join(sorted(SQLModel.metadata.tables)),
        engine.url,
    )


def init_db(database_url: Optional[str] = None) -> Engine:
    """
    创建引擎并建表

    Args:
        database_url: 连接 URL（可选）

    Returns:
        初始化完成的引擎
    """
    engine = get_engine(database_url)
    create_tables(engine)
    return engine


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
