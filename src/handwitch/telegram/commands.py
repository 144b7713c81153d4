"""
Команды бота: /process, /help, /start.

Команда получает блок аргументов (всё после имени команды) и контекст
сессии. Ошибки команд не перехватываются - о них сообщает роутер сессий.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Optional

from ..core.source import URLProcessor
from .errors import CommandError
from .states import ParamsStateMachine
from .transport import Transport

logger = logging.getLogger(__name__)

_COMMAND_RE = re.compile(r"^/(\w+)(?:@(\w+))?(?:\s+(.*))?$", re.DOTALL)

COMMON_HELP = (
    "HandWitch helps you to make requests from telegram\n"
    "available commands:\n"
    "\t /process {requestname} - to work with requestname\n"
    "\t /help {requestname} - to get help for requestname\n"
    "\t /help - to get common bot help\n"
    "\n"
)


class ParsedCommand(NamedTuple):
    name: str
    arguments: str
    mention: Optional[str] = None


def parse_command(text: str) -> Optional[ParsedCommand]:
    """
    Разобрать "/name[@bot] arguments".

    Returns:
        ParsedCommand или None, если текст не команда
    """
    match = _COMMAND_RE.match(text.strip())
    if not match:
        return None
    name, mention, arguments = match.groups()
    return ParsedCommand(name.lower(), (arguments or "").strip(), mention)


def get_hand_name(arguments: str) -> str:
    """Имя ручки - первая строка аргументов."""
    name = arguments.split("\n", 1)[0].strip()
    if not name:
        raise CommandError("Failed to get hand name: empty arguments")
    return name


@dataclass
class SessionContext:
    """Всё, что нужно команде для работы в рамках одной сессии."""
    transport: Transport
    url_processor: URLProcessor
    logger: Any = logger


class Command(ABC):
    name: str = ""

    @abstractmethod
    async def execute(self, arguments: str, ctx: SessionContext) -> None:
        ...


class ProcessCommand(Command):
    """Сбор параметров ручки и выполнение запроса."""

    name = "process"

    async def execute(self, arguments: str, ctx: SessionContext) -> None:
        if not arguments:
            raise CommandError("Empty arguments")
        hand = ctx.url_processor.get_hand(get_hand_name(arguments))
        ctx.logger.debug(f"Processing hand {hand.name}")
        await ParamsStateMachine(hand, ctx.transport, ctx.logger).run(arguments)


class HelpCommand(Command):
    """Общая справка или справка по конкретной ручке."""

    name = "help"

    async def execute(self, arguments: str, ctx: SessionContext) -> None:
        if not arguments:
            await ctx.transport.send(COMMON_HELP + ctx.url_processor.brief_help())
            return
        hand = ctx.url_processor.get_hand(get_hand_name(arguments))
        await ctx.transport.send(hand.help_text())


class StartCommand(HelpCommand):
    # при старте пока ничего особенного не делаем
    name = "start"


COMMANDS: Dict[str, Command] = {
    command.name: command
    for command in (ProcessCommand(), HelpCommand(), StartCommand())
}


def get_command(name: str) -> Command:
    try:
        return COMMANDS[name]
    except KeyError:
        raise CommandError(f"Wrong command {name}") from None
