"""
Фикстуры и тестовые данные HandWitch
"""

from .descriptions import GREET_YAML, SAMPLE_DESCRIPTIONS
from .fake_transport import FakeTransport
from .mock_updates import (
    create_mock_bot, create_mock_chat, create_mock_context,
    create_mock_message, create_mock_update, create_mock_user
)

__all__ = [
    "GREET_YAML",
    "SAMPLE_DESCRIPTIONS",
    "FakeTransport",
    "create_mock_bot",
    "create_mock_chat",
    "create_mock_context",
    "create_mock_message",
    "create_mock_update",
    "create_mock_user",
]
