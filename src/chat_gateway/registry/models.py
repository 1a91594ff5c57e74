"""模型注册表：把面向用户的模型键解析为上游模型 ID 与能力标记。

Model registry: static catalog of chat models and their capabilities.

The registry is built once at start (from the built-in catalog or a YAML
file) and passed explicitly to the clients that need it.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chat_gateway.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


class Provider(str, Enum):
    """Chat completion service providers."""

    VOLCENGINE = "volcengine"
    OPENAI = "openai"
    AZURE = "azure"
    CUSTOM = "custom"


class ModelDescriptor(BaseModel):
    """Catalog entry for one chat model."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    key: str = Field(min_length=1, description="User-facing model key")
    upstream_id: str = Field(min_length=1, description="Identifier sent on the wire")
    max_tokens: int = Field(gt=0, description="Token limit of the model")
    supports_stream: bool = Field(default=True, description="Supports streamed responses")
    supports_reasoning: bool = Field(
        default=False, description="Returns a reasoning trace alongside content"
    )
    name: str = Field(default="", description="Display name")
    description: str = Field(default="", description="Short description")
    provider: Provider = Field(default=Provider.CUSTOM, description="Service provider")


_DEFAULT_CATALOG: tuple[dict[str, Any], ...] = (
    {
        "key": "deepseek-r1-250120",
        "upstream_id": "bot-20250221150454-8g452",
        "name": "DeepSeek R1",
        "description": "Deep reasoning model with strong logical inference",
        "provider": Provider.VOLCENGINE,
        "max_tokens": 8192,
        "supports_stream": True,
        "supports_reasoning": True,
    },
    {
        "key": "doubao-thinking-pro",
        "upstream_id": "doubao-thinking-pro",
        "name": "Doubao Thinking Pro",
        "description": "Doubao reasoning model for complex questions",
        "provider": Provider.VOLCENGINE,
        "max_tokens": 4096,
        "supports_stream": True,
        "supports_reasoning": True,
    },
    {
        "key": "doubao-pro-4k",
        "upstream_id": "doubao-pro-4k",
        "name": "Doubao Pro 4K",
        "description": "Doubao general conversation model",
        "provider": Provider.VOLCENGINE,
        "max_tokens": 4096,
        "supports_stream": True,
        "supports_reasoning": False,
    },
    {
        "key": "gpt-4",
        "upstream_id": "gpt-4",
        "name": "GPT-4",
        "description": "OpenAI GPT-4 model",
        "provider": Provider.OPENAI,
        "max_tokens": 8192,
        "supports_stream": True,
        "supports_reasoning": False,
    },
)


class ModelRegistry:
    """Read-only lookup from model key to descriptor.

    Example:
        >>> registry = ModelRegistry.default()
        >>> registry.resolve("deepseek-r1-250120")
        'bot-20250221150454-8g452'
        >>> registry.resolve("my-custom-endpoint")
        'my-custom-endpoint'
    """

    def __init__(self, descriptors: Iterable[ModelDescriptor] = ()) -> None:
        models: dict[str, ModelDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in models:
                raise ConfigError(
                    f"Duplicate model key: {descriptor.key!r}", field="models"
                )
            models[descriptor.key] = descriptor
        self._models = models

    @classmethod
    def default(cls) -> ModelRegistry:
        """Build the registry from the built-in catalog."""
        return cls(ModelDescriptor(**entry) for entry in _DEFAULT_CATALOG)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ModelRegistry:
        """Build a registry from a parsed catalog document.

        The document has a top-level ``models`` mapping keyed by model key::

            models:
              doubao-pro-4k:
                upstream_id: doubao-pro-4k
                max_tokens: 4096

        Raises:
            ConfigError: If the document or an entry is invalid
        """
        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, dict):
            raise ConfigError("Model catalog must contain a 'models' mapping", field="models")

        descriptors = []
        for key, entry in models.items():
            if not isinstance(entry, dict):
                raise ConfigError(f"Invalid catalog entry for {key!r}", field=f"models.{key}")
            if "key" in entry and entry["key"] != key:
                raise ConfigError(
                    f"Catalog entry {key!r} declares a different key {entry['key']!r}",
                    field=f"models.{key}.key",
                )
            try:
                descriptors.append(ModelDescriptor.model_validate({**entry, "key": str(key)}))
            except ValidationError as e:
                raise ConfigError(
                    f"Invalid catalog entry for {key!r}: {e.errors()[0]['msg']}",
                    field=f"models.{key}",
                ) from e
        return cls(descriptors)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ModelRegistry:
        """Load a registry from a YAML catalog file.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        file_path = Path(path)
        try:
            data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigError(f"Cannot read model catalog: {e}", field=str(file_path)) from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in model catalog: {e}", field=str(file_path)) from e
        return cls.from_mapping(data or {})

    def resolve(self, key: str) -> str:
        """Resolve a model key to its upstream identifier.

        Unknown keys are returned unchanged and treated as upstream ids.
        """
        descriptor = self._models.get(key)
        return descriptor.upstream_id if descriptor else key

    def get(self, key: str) -> ModelDescriptor | None:
        """Get the descriptor for a key, or None if unknown."""
        return self._models.get(key)

    def available_models(self, provider: Provider | str | None = None) -> list[ModelDescriptor]:
        """List descriptors, optionally filtered by provider."""
        if provider is None:
            return list(self._models.values())
        wanted = Provider(provider).value
        return [m for m in self._models.values() if m.provider == wanted]

    def keys(self) -> list[str]:
        """List known model keys."""
        return list(self._models)

    def __contains__(self, key: object) -> bool:
        return key in self._models

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)
