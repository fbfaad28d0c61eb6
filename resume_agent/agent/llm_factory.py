"""
聊天模型工厂

provider 配置写在 llm_config.json 中，API Key 只从系统环境变量读取（从不读取 .env）：

    {
      "active_model": "gemini",
      "providers": {
        "gemini": {"model_name": "...", "env_key_map": "GEMINI_API_KEY", "temperature": 0.7},
        "moonshot": {"base_url": "...", "model_name": "...", "env_key_map": "MOONSHOT_API_KEY"}
      }
    }

专家 Agent、一次性生成和流式生成共用同一个模型实例，
返回的 LangChain 聊天模型同时支持 invoke 和 stream。
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "LLM_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "llm_config.json"
DEFAULT_TEMPERATURE = 0.7


class ProviderConfig(BaseModel):
    """单个 provider 的连接参数"""
    model_name: str = Field(min_length=1)
    env_key_map: str = Field(min_length=1, description="保存 API Key 的环境变量名")
    base_url: Optional[str] = None
    temperature: float = DEFAULT_TEMPERATURE


class LLMSettings(BaseModel):
    active_model: str = Field(min_length=1)
    providers: Dict[str, ProviderConfig]


def _build_openai_compatible(config: ProviderConfig, api_key: str, temperature: float) -> Any:
    return ChatOpenAI(
        api_key=api_key,
        base_url=config.base_url,
        model=config.model_name,
        temperature=temperature,
    )


def _build_gemini(config: ProviderConfig, api_key: str, temperature: float) -> Any:
    return ChatGoogleGenerativeAI(
        google_api_key=api_key,
        model=config.model_name,
        temperature=temperature,
    )


# provider 名 -> 构造函数；Moonshot 走 OpenAI 兼容接口
PROVIDER_BUILDERS: Dict[str, Callable[[ProviderConfig, str, float], Any]] = {
    "gemini": _build_gemini,
    "moonshot": _build_openai_compatible,
    "openai_official": _build_openai_compatible,
}


class LLMFactory:
    """
    模型工厂

    使用示例：
        factory = LLMFactory()
        llm = factory.get_llm()                     # active_model，进程内复用
        strict = factory.create_llm(temperature=0)  # 新实例
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Args:
            config_path: 配置文件路径（可选），默认依次取环境变量 LLM_CONFIG_PATH、
                项目根目录下的 llm_config.json
        """
        self.config_path = str(config_path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
        self._settings: Optional[LLMSettings] = None
        self._instances: Dict[Tuple[str, Optional[float]], Any] = {}

    def load_settings(self) -> LLMSettings:
        """
        读取并校验配置文件（只读一次）

        Raises:
            FileNotFoundError: 配置文件不存在
            ValueError: JSON 格式错误或字段缺失
        """
        if self._settings is None:
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
            except FileNotFoundError:
                raise FileNotFoundError(f"配置文件不存在: {self.config_path}")
            except json.JSONDecodeError as e:
                raise ValueError(f"配置文件 JSON 格式错误: {e}") from e

            try:
                self._settings = LLMSettings.model_validate(raw)
            except ValidationError as e:
                raise ValueError(f"配置文件字段不合法: {e}") from e
        return self._settings

    def provider_config(self, provider: Optional[str] = None) -> Tuple[str, ProviderConfig]:
        """
        取 provider 配置

        Args:
            provider: provider 名（可选），默认 active_model

        Returns:
            (provider 名, 配置)

        Raises:
            ValueError: providers 中没有该 provider
        """
        settings = self.load_settings()
        name = provider or settings.active_model
        config = settings.providers.get(name)
        if config is None:
            raise ValueError(f"providers 中找不到 '{name}' 的配置")
        return name, config

    @staticmethod
    def _get_api_key(env_key: str) -> str:
        api_key = os.getenv(env_key)
        if not api_key:
            raise ValueError(f"环境变量 '{env_key}' 未设置或为空，无法初始化 LLM")
        return api_key

    def create_llm(self, provider: Optional[str] = None, temperature: Optional[float] = None) -> Any:
        """
        创建新的聊天模型实例

        Args:
            provider: provider 名（可选）
            temperature: 覆盖配置中的温度（可选）

        Raises:
            ValueError: 配置错误或环境变量缺失
            NotImplementedError: 不支持的 provider
        """
        name, config = self.provider_config(provider)
        builder = PROVIDER_BUILDERS.get(name)
        if builder is None:
            raise NotImplementedError(f"不支持的模型类型: {name}")

        api_key = self._get_api_key(config.env_key_map)
        effective_temperature = config.temperature if temperature is None else temperature
        logger.info("[LLMFactory] 创建模型: provider=%s model=%s", name, config.model_name)
        return builder(config, api_key, effective_temperature)

    def get_llm(self, provider: Optional[str] = None, temperature: Optional[float] = None) -> Any:
        """同一 provider + 温度在进程内复用同一实例"""
        key = (provider or self.load_settings().active_model, temperature)
        if key not in self._instances:
            self._instances[key] = self.create_llm(provider, temperature)
        return self._instances[key]


# 全局工厂实例
llm_factory = LLMFactory()


def get_llm(provider: Optional[str] = None, temperature: Optional[float] = None) -> Any:
    """获取共享聊天模型的便捷函数"""
    return llm_factory.get_llm(provider, temperature)
