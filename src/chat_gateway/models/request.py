"""
Unified request models for the chat gateway.

Also holds the pure conversions from canonical messages to the request
bodies of each upstream family.
"""

import re
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

if TYPE_CHECKING:
    from ..core.config import EffectiveConfig

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(image/[^;]+);base64,(.+)$")

CREDENTIAL_FIELDS = ("credentialOverride", "llmConfig", "credential_override")


class ProviderType(str, Enum):
    """Upstream API families the gateway can talk to."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"

    @classmethod
    def _missing_(cls, value):
        # Accept the spelled-out "openai-compatible" form as well
        if isinstance(value, str):
            name = value.strip().lower()
            if name.endswith("-compatible"):
                name = name[: -len("-compatible")]
            for member in cls:
                if member.value == name:
                    return member
        return None

    @classmethod
    def normalize(cls, value: Optional[str]) -> str:
        """Map a configured provider name to a known value, defaulting to OpenAI."""
        if not value:
            return cls.OPENAI.value
        try:
            return cls(value).value
        except ValueError:
            logger.warning(f"Unknown provider {value!r}, falling back to {cls.OPENAI.value}")
            return cls.OPENAI.value


class ImageUrl(BaseModel):
    """Image reference inside a content part."""
    url: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class ContentPart(BaseModel):
    """
    One part of a multimodal message.

    Known types are ``text`` and ``image_url``. Other types are accepted
    here and dropped during conversion.
    """
    type: str
    text: Optional[str] = None
    image_url: Optional[ImageUrl] = None

    model_config = ConfigDict(extra="allow")


class Message(BaseModel):
    """Canonical chat message: a string or a non-empty list of parts."""
    role: Literal["system", "user", "assistant"]
    content: Union[str, List[ContentPart]]

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, value):
        if isinstance(value, list) and not value:
            raise ValueError("content parts must not be empty")
        return value

    def text_content(self) -> str:
        """Return string content, or the joined text parts of list content."""
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text or "" for p in self.content if p.type == "text")


class ProviderCredential(BaseModel):
    """
    Caller-supplied upstream credentials.

    Missing fields fall back to server defaults. A credential without an
    API key is treated as absent.
    """
    provider: Optional[ProviderType] = None
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    model_id: Optional[str] = Field(default=None, alias="modelId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("provider", mode="before")
    @classmethod
    def parse_provider(cls, value):
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return ProviderType(value)
        return value

    @property
    def is_usable(self) -> bool:
        return bool(self.api_key)


class ChatRequest(BaseModel):
    """
    Uniform chat request accepted by the gateway.

    The credential override is read from ``credentialOverride`` or from the
    ``llmConfig`` field older clients send.
    """
    messages: List[Message] = Field(..., min_length=1)
    stream: bool = False
    credential_override: Optional[ProviderCredential] = Field(
        default=None,
        validation_alias=AliasChoices(*CREDENTIAL_FIELDS),
    )

    @model_validator(mode="before")
    @classmethod
    def drop_keyless_credentials(cls, data):
        # Credentials without an API key are never looked at
        if not isinstance(data, dict):
            return data
        keyless = [
            name for name in CREDENTIAL_FIELDS
            if isinstance(data.get(name), dict)
            and not (data[name].get("apiKey") or data[name].get("api_key"))
        ]
        if not keyless:
            return data
        return {k: v for k, v in data.items() if k not in keyless}

    @property
    def has_credential_override(self) -> bool:
        return self.credential_override is not None and self.credential_override.is_usable


def parse_data_url(url: str) -> Optional[Tuple[str, str]]:
    """Split a base64 image data URL into ``(media_type, payload)``."""
    match = DATA_URL_PATTERN.match(url)
    if not match:
        return None
    return match.group(1), match.group(2)


def to_openai_messages(messages: List[Message]) -> List[Dict[str, Any]]:
    """Convert messages to OpenAI chat format, dropping unknown parts."""
    result = []
    for m in messages:
        if isinstance(m.content, str):
            result.append({"role": m.role, "content": m.content})
            continue
        parts = [
            p.model_dump(exclude_none=True)
            for p in m.content
            if p.type in ("text", "image_url")
        ]
        result.append({"role": m.role, "content": parts})
    return result


def to_anthropic_parts(parts: List[ContentPart]) -> List[Dict[str, Any]]:
    """
    Convert content parts to Anthropic content blocks.

    Data URL images become inline base64 blocks. Anthropic only takes inline
    image data, so any other image URL degrades to a text block carrying the
    URL. Unknown and empty parts are dropped.
    """
    blocks = []
    for part in parts:
        if part.type == "text":
            block = {"type": "text", "text": part.text or ""}
        elif part.type == "image_url" and part.image_url and part.image_url.url:
            url = part.image_url.url
            decoded = parse_data_url(url) if url.startswith("data:") else None
            if decoded:
                media_type, payload = decoded
                block = {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": media_type,
                        "data": payload,
                    },
                }
            else:
                block = {"type": "text", "text": f"[Image URL: {url}]"}
        else:
            block = {"type": "text", "text": ""}

        if block["type"] == "image" or block["text"]:
            blocks.append(block)
    return blocks


def to_openai_payload(
    messages: List[Message],
    config: "EffectiveConfig",
    stream: bool,
) -> Dict[str, Any]:
    """Build an OpenAI ``/chat/completions`` request body."""
    return {
        "model": config.model_id,
        "messages": to_openai_messages(messages),
        "max_tokens": config.max_tokens,
        "stream": stream,
    }


def to_anthropic_payload(
    messages: List[Message],
    config: "EffectiveConfig",
    stream: bool,
) -> Dict[str, Any]:
    """
    Build an Anthropic ``/messages`` request body.

    The first system message becomes the top-level ``system`` field. Any
    further system messages are dropped.
    """
    system = next((m for m in messages if m.role == "system"), None)

    converted = []
    for m in messages:
        if m.role == "system":
            continue
        content = m.content if isinstance(m.content, str) else to_anthropic_parts(m.content)
        converted.append({"role": m.role, "content": content})

    return {
        "model": config.model_id,
        "max_tokens": config.max_tokens,
        "system": system.text_content() if system else "",
        "messages": converted,
        "stream": stream,
    }
