"""模型注册表：模型键到上游 ID 与能力标记的静态映射。

Model registry.
"""

from chat_gateway.registry.models import ModelDescriptor, ModelRegistry, Provider

__all__ = [
    "ModelDescriptor",
    "ModelRegistry",
    "Provider",
]
