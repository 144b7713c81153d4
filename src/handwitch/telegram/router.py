"""
Роутер сессий.

Каждое входящее сообщение относится к сессии по ключу (чат, логин).
Команда для ключа без активной сессии создаёт новую сессию - отдельную
asyncio задачу со своей ограниченной очередью входящих строк. Сообщения
для ключа с активной сессией кладутся в её очередь в порядке поступления.
Когда задача сессии завершается, сессия удаляется из реестра, и следующее
сообщение для этого ключа начинает новый разговор.

Основные классы:
- SessionKey: ключ сессии
- Session: очередь и задача одной сессии
- SessionRegistry: таблица активных сессий
- SessionRouter: разбор обновлений и жизненный цикл сессий
"""

import asyncio
import logging
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from telegram import Update

from ..core.errors import HandWitchError
from ..core.source import URLProcessor
from .auth import Authorisation, DummyAuthorisation
from .commands import ParsedCommand, SessionContext, get_command, parse_command
from .errors import SessionTimeoutError, TransportError
from .transport import Transport

logger = logging.getLogger(__name__)


class SessionKey(NamedTuple):
    chat_id: int
    login: str


class SessionLoggerAdapter(logging.LoggerAdapter):
    """Префикс [chat login] для всех сообщений лога сессии."""

    def process(self, msg, kwargs):
        return f"[{self.extra['chat_id']} {self.extra['login']}] {msg}", kwargs


TransportFactory = Callable[[SessionKey, "asyncio.Queue[str]", logging.LoggerAdapter], Transport]


class Session:
    """Активный разговор: очередь входящих строк и задача-потребитель."""

    def __init__(self, key: SessionKey, text: str, queue_size: int):
        self.key = key
        self.text = text
        self.queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=queue_size)
        self.task: Optional[asyncio.Task] = None

    @property
    def finished(self) -> bool:
        return self.task is not None and self.task.done()

    async def deliver(self, text: str) -> bool:
        """
        Передать строку сессии.

        Если очередь полна, ждёт, пока сессия прочитает сообщение или
        завершится. Возвращает False, если сессия завершилась раньше.
        """
        if self.task is None or self.task.done():
            return False
        put = asyncio.ensure_future(self.queue.put(text))
        try:
            await asyncio.wait({put, self.task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not put.done():
                put.cancel()
        return put.done() and not put.cancelled()

    def __repr__(self) -> str:
        return f"Session({self.key!r})"


class SessionRegistry:
    """Таблица активных сессий, защищённая asyncio.Lock."""

    def __init__(self):
        self._sessions: Dict[SessionKey, Session] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(
        self,
        key: SessionKey,
        factory: Optional[Callable[[], Session]] = None,
    ) -> Tuple[Optional[Session], bool]:
        """
        Активная сессия для ключа или новая, созданная factory.

        Returns:
            (сессия или None, создана ли она сейчас)
        """
        async with self._lock:
            session = self._sessions.get(key)
            if session is not None and not session.finished:
                return session, False
            if factory is None:
                return None, False
            session = factory()
            self._sessions[key] = session
            return session, True

    def discard(self, key: SessionKey, session: Session) -> bool:
        """
        Удалить сессию, если по ключу всё ещё зарегистрирована именно она.

        Синхронный метод: вызывается из done callback задачи сессии.
        """
        if self._sessions.get(key) is not session:
            return False
        del self._sessions[key]
        return True

    async def snapshot(self) -> List[Session]:
        async with self._lock:
            return list(self._sessions.values())

    def __contains__(self, key: SessionKey) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


class SessionRouter:
    """Направляет сообщения в сессии и управляет их жизненным циклом."""

    def __init__(
        self,
        url_processor: URLProcessor,
        transport_factory: TransportFactory,
        auth: Optional[Authorisation] = None,
        queue_size: int = 16,
        bot_username: Optional[str] = None,
    ):
        self.url_processor = url_processor
        self.transport_factory = transport_factory
        self.auth = auth or DummyAuthorisation()
        self.queue_size = queue_size
        self.bot_username = bot_username
        self.registry = SessionRegistry()

    @staticmethod
    def key_from_update(update: Update) -> Optional[SessionKey]:
        chat = update.effective_chat
        user = update.effective_user
        if chat is None or user is None:
            return None
        return SessionKey(chat.id, user.username or str(user.id))

    async def dispatch(self, update: Update) -> None:
        """Обработать одно обновление Telegram."""
        message = update.effective_message
        if message is None or not message.text:
            logger.debug("No text in update, skipping")
            return
        key = self.key_from_update(update)
        if key is None:
            logger.debug("No chat or user in update, skipping")
            return
        if not self.auth.is_allowed(key.login):
            logger.warning(f"User {key.login} has a \"Guest\" role, ignore")
            return
        logger.debug(f"Got message [{key.login}] {message.text}")
        await self.handle_text(key, message.text)

    def _parse_own_command(self, text: str) -> Optional[ParsedCommand]:
        command = parse_command(text)
        if command is None or command.mention is None or not self.bot_username:
            return command
        if command.mention.lower() != self.bot_username.lstrip("@").lower():
            return None
        return command

    async def handle_text(self, key: SessionKey, text: str) -> None:
        command = self._parse_own_command(text)
        factory = None
        if command is not None:
            def factory() -> Session:
                return self._start_session(key, text, command)

        session, created = await self.registry.get_or_create(key, factory)
        if session is None:
            logger.debug(f"No active session for {key}, message dropped")
            return
        if created:
            return
        if not await session.deliver(text):
            logger.warning(f"Session {key} finished before delivery, message dropped: {text}")

    def _start_session(self, key: SessionKey, text: str, command: ParsedCommand) -> Session:
        session = Session(key, text, self.queue_size)
        log = SessionLoggerAdapter(logger, {"chat_id": key.chat_id, "login": key.login})
        transport = self.transport_factory(key, session.queue, log)
        session.task = asyncio.create_task(self._run_session(session, command, transport, log))
        # задача, отменённая до первого шага, не доходит до finally в _run_session
        session.task.add_done_callback(lambda _: self.registry.discard(key, session))
        log.debug(f"Session started with command {command.name}")
        return session

    async def _notify(self, transport: Transport, text: str, log: logging.LoggerAdapter) -> None:
        try:
            await transport.send(text)
        except TransportError as e:
            log.error(f"Error on sending message {e}")

    async def _run_session(
        self,
        session: Session,
        command: ParsedCommand,
        transport: Transport,
        log: logging.LoggerAdapter,
    ) -> None:
        try:
            ctx = SessionContext(transport, self.url_processor, log)
            await get_command(command.name).execute(command.arguments, ctx)
            log.debug("Session finished")
        except asyncio.CancelledError:
            log.debug("Session cancelled")
            raise
        except TransportError as e:
            log.error(f"Session aborted: {e}")
        except SessionTimeoutError as e:
            log.info(str(e))
            await self._notify(transport, str(e), log)
        except HandWitchError as e:
            log.warning(f"Error on processing message {session.text}: {e}")
            await self._notify(transport, f"Error on processing message {session.text}: {e}", log)
        except Exception as e:
            log.exception(f"Unexpected error on processing message {session.text}")
            await self._notify(transport, f"Error on processing message {session.text}: {e}", log)

    async def shutdown(self) -> None:
        """Отменить все активные сессии и дождаться их завершения."""
        sessions = await self.registry.snapshot()
        tasks = [session.task for session in sessions if session.task is not None]
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} active sessions")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
