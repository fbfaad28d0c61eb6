"""
文档渲染器接口

渲染引擎是外部协作者：核心只交付清洗后的文档描述，拿回二进制和定位符，
不关心渲染内部实现。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

PDF_MIME_TYPE = "application/pdf"


@dataclass
class RenderedDocument:
    """渲染结果"""
    blob: bytes
    url: str
    size: int
    mime_type: str = PDF_MIME_TYPE


class DocumentRenderer(ABC):
    """
    渲染器基类

    子类对接具体的 PDF 引擎，例如调用 pdfmake 的 Node 服务
    """

    @abstractmethod
    def render(self, document: Dict[str, Any]) -> RenderedDocument:
        """把文档描述渲染为二进制并返回可访问的定位符"""

    @abstractmethod
    def download(self, document: Dict[str, Any], filename: Optional[str] = None) -> str:
        """
        直接下载

        Returns:
            下载文件的路径或地址
        """
