"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：代码里使用的统一名称，例如 "drone-chat"。
- provider_model：厂商实际提供的模型 ID，例如 "gpt-4.1-nano"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置。
"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass
class ModelConfig:
    logical_name: str
    provider_model: str
    max_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """单个 Provider 的静态描述，与 Settings 解耦。

    ``api_key_setting`` / ``base_url_setting`` 指向 Settings 中保存密钥与地址覆盖的字段名。
    """

    name: str
    base_url: str
    api_key_setting: str
    base_url_setting: str
    models: Dict[str, ModelConfig]


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    api_key_setting="openai_api_key",
    base_url_setting="openai_base_url",
    models={
        "drone-chat": ModelConfig(
            logical_name="drone-chat",
            provider_model="gpt-4.1-nano",
            max_tokens=4096,
            default_temperature=0.0,
        )
    },
)

KIMI_CONFIG = ProviderConfig(
    name="kimi",
    base_url="https://api.moonshot.cn/v1",
    api_key_setting="kimi_api_key",
    base_url_setting="kimi_base_url",
    models={
        "drone-chat": ModelConfig(
            logical_name="drone-chat",
            provider_model="kimi-k2-turbo-preview",
            max_tokens=8192,
            default_temperature=0.0,
        )
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openai": OPENAI_CONFIG,
    "kimi": KIMI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """按名称（不区分大小写）查找 ProviderConfig。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
