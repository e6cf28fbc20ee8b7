"""
Shared configuration fixtures.
"""
import pytest

from chat_gateway.core.config import EffectiveConfig, GatewayDefaults


@pytest.fixture
def openai_config() -> EffectiveConfig:
    return EffectiveConfig(
        provider="openai",
        base_url="https://upstream.test/v1",
        api_key="sk-test",
        model_id="gpt-4o",
        max_tokens=64000,
    )


@pytest.fixture
def anthropic_config() -> EffectiveConfig:
    return EffectiveConfig(
        provider="anthropic",
        base_url="https://upstream.test/v1/",
        api_key="sk-ant-test",
        model_id="claude-sonnet",
        max_tokens=64000,
    )


@pytest.fixture
def defaults() -> GatewayDefaults:
    return GatewayDefaults(
        provider="openai",
        base_url="https://upstream.test/v1",
        api_key="sk-server",
        model_id="gpt-4o",
        access_password="secret",
    )
