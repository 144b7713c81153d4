"""
Транспорт одной сессии: отправка сообщений, чтение ответов пользователя
и запрос недостающих параметров с клавиатурой.

Основные классы:
- Transport: интерфейс, который использует машина состояний
- TelegramTransport: реализация поверх python-telegram-bot
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

from telegram import Bot, ReplyKeyboardMarkup, ReplyKeyboardRemove
from telegram.constants import ParseMode
from telegram.error import TelegramError

from ..core.descriptors import ParamProcessor
from .buttons import ExtraButton, build_keyboard_rows
from .errors import SessionTimeoutError, TransportError

logger = logging.getLogger(__name__)


def normalize_parse_mode(raw: Optional[str]) -> Optional[str]:
    """Режим форматирования из конфига ("MarkDown", "html", ...)."""
    if not raw:
        return None
    value = raw.strip().lower()
    if value == "markdown":
        return ParseMode.MARKDOWN
    if value == "html":
        return ParseMode.HTML
    raise ValueError(f"Invalid message mode {raw}")


def render_params_prompt(
    missing: Mapping[str, ParamProcessor],
    params: Mapping[str, ParamProcessor],
    values: Mapping[str, Any],
) -> str:
    """Текст запроса параметров: текущие значения и список недостающих."""
    parts = []
    if params:
        parts.append("Current values: \n")
        for name, value in values.items():
            parts.append(f"{name} {value} \n")
    if missing:
        names = '", "'.join(missing)
        parts.append(f'Missed params: "{names}" \n')
    return "".join(parts)


class Transport(ABC):
    """Канал общения одной сессии с пользователем."""

    @abstractmethod
    async def send(self, text: str, formatted: bool = False) -> None:
        """
        Отправить сообщение и убрать клавиатуру.

        formatted=True только для отрендеренного ответа ручки: служебные
        тексты и помощь уходят без parse_mode.
        """

    @abstractmethod
    async def get(self) -> str:
        """Дождаться следующей строки от пользователя."""

    @abstractmethod
    async def request_params(
        self,
        missing: Mapping[str, ParamProcessor],
        params: Mapping[str, ParamProcessor],
        values: Mapping[str, Any],
        buttons: Sequence[ExtraButton],
    ) -> None:
        """Показать текущие значения и клавиатуру недостающих параметров."""


class TelegramTransport(Transport):
    """Транспорт сессии поверх Telegram Bot API."""

    def __init__(
        self,
        bot: Bot,
        chat_id: int,
        queue: "asyncio.Queue[str]",
        parse_mode: Optional[str] = None,
        idle_timeout: Optional[float] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.bot = bot
        self.chat_id = chat_id
        self.queue = queue
        self.parse_mode = parse_mode
        self.idle_timeout = idle_timeout or None
        self.logger = log or logger

    async def get(self) -> str:
        self.logger.debug("Waiting for message")
        try:
            if self.idle_timeout:
                return await asyncio.wait_for(self.queue.get(), self.idle_timeout)
            return await self.queue.get()
        except asyncio.TimeoutError:
            raise SessionTimeoutError(self.idle_timeout) from None

    async def send(self, text: str, formatted: bool = False) -> None:
        self.logger.debug(f"Sending message {text}")
        try:
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=self.parse_mode if formatted else None,
                reply_markup=ReplyKeyboardRemove(),
            )
        except TelegramError as e:
            self.logger.error(f"Error on sending message {e}:\n message text:\n {text}")
            raise TransportError(f"Failed to send message: {e}") from e

    async def request_params(
        self,
        missing: Mapping[str, ParamProcessor],
        params: Mapping[str, ParamProcessor],
        values: Mapping[str, Any],
        buttons: Sequence[ExtraButton],
    ) -> None:
        text = render_params_prompt(missing, params, values)
        keyboard = ReplyKeyboardMarkup(
            build_keyboard_rows(missing, buttons),
            resize_keyboard=True,
        )
        try:
            await self.bot.send_message(chat_id=self.chat_id, text=text, reply_markup=keyboard)
        except TelegramError as e:
            raise TransportError(f"Failed request missing parameters from user: {e}") from e
