"""
Telegram интерфейс HandWitch: сессии, машина состояний сбора параметров,
кнопки, транспорт и сам бот.
"""

from .auth import Authorisation, DummyAuthorisation, Role, WhiteListAuthorisation, load_whitelist
from .bot import HandWitchTelegramBot, build_auth, build_url_processor
from .config import TelegramBotConfig
from .errors import CommandError, SessionTimeoutError, TransportError
from .router import SessionKey, SessionRegistry, SessionRouter
from .states import ParamsStateMachine
from .transport import TelegramTransport, Transport

__all__ = [
    "Authorisation",
    "DummyAuthorisation",
    "Role",
    "WhiteListAuthorisation",
    "load_whitelist",
    "HandWitchTelegramBot",
    "build_auth",
    "build_url_processor",
    "TelegramBotConfig",
    "CommandError",
    "SessionTimeoutError",
    "TransportError",
    "SessionKey",
    "SessionRegistry",
    "SessionRouter",
    "ParamsStateMachine",
    "TelegramTransport",
    "Transport",
]
