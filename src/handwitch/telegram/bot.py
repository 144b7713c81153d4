"""
Основной класс Telegram бота HandWitch.

Основные классы:
- HandWitchTelegramBot: сборка приложения python-telegram-bot, запуск
  в режиме polling или webhook и остановка
- BotErrorHandler: глобальный обработчик ошибок приложения
"""

import asyncio
import logging
from typing import Optional

from telegram import Update
from telegram.ext import Application, ContextTypes, filters
from telegram.ext import MessageHandler as TelegramMessageHandler

from ..core.loader import load_descriptions
from ..core.source import URLProcessor
from .auth import Authorisation, DummyAuthorisation, load_whitelist
from .config import TelegramBotConfig
from .router import SessionKey, SessionRouter
from .transport import TelegramTransport

logger = logging.getLogger(__name__)


def build_url_processor(config: TelegramBotConfig) -> URLProcessor:
    logger.info(f"Description file path used {config.descriptions_path}")
    source = load_descriptions(config.descriptions_path)
    return URLProcessor(source, request_timeout=config.request_timeout_seconds)


def build_auth(config: TelegramBotConfig) -> Authorisation:
    # без белого списка бот доступен всем
    if config.white_list_path:
        logger.info(f"Used whitelist: {config.white_list_path}")
        return load_whitelist(config.white_list_path)
    logger.info("No whitelist found starting with dummy auth")
    return DummyAuthorisation()


class BotErrorHandler:
    """Обработчик ошибок бота."""

    @staticmethod
    async def error_handler(update: Optional[object], context: ContextTypes.DEFAULT_TYPE):
        """Глобальный обработчик ошибок."""
        logger.error(f"Exception while handling update {update}: {context.error}")


class HandWitchTelegramBot:
    """Telegram бот, выполняющий HTTP запросы по описаниям ручек."""

    def __init__(
        self,
        config: TelegramBotConfig,
        url_processor: Optional[URLProcessor] = None,
        auth: Optional[Authorisation] = None,
    ):
        self.config = config
        self.url_processor = url_processor
        self.auth = auth
        self.application: Optional[Application] = None
        self.router: Optional[SessionRouter] = None

        self._running = False
        self._stop_event = asyncio.Event()

    def _make_transport(self, key: SessionKey, queue: "asyncio.Queue[str]", log) -> TelegramTransport:
        return TelegramTransport(
            self.application.bot,
            key.chat_id,
            queue,
            parse_mode=self.config.parse_mode,
            idle_timeout=self.config.session_idle_timeout_seconds,
            log=log,
        )

    async def initialize(self):
        """Инициализация бота."""
        try:
            logger.info("Initializing HandWitch Telegram Bot...")

            if self.url_processor is None:
                self.url_processor = build_url_processor(self.config)
            if self.auth is None:
                self.auth = build_auth(self.config)

            builder = Application.builder().token(self.config.bot_token)
            if self.config.proxy:
                logger.info(f"Used proxy for telegram client: {self.config.proxy}")
                builder = builder.proxy(self.config.proxy).get_updates_proxy(self.config.proxy)
            self.application = builder.build()

            self.router = SessionRouter(
                self.url_processor,
                self._make_transport,
                auth=self.auth,
                queue_size=self.config.session_queue_size,
                bot_username=self.config.bot_username or None,
            )

            self._register_handlers()
            self.application.add_error_handler(BotErrorHandler.error_handler)

            logger.info("Bot initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize bot: {e}")
            raise

    def _register_handlers(self):
        """Регистрация обработчиков."""
        if not self.application:
            raise RuntimeError("Application not initialized")

        # одна задача на каждое обновление, сессии не блокируют друг друга
        self.application.add_handler(
            TelegramMessageHandler(filters.TEXT, self._handle_update, block=False)
        )

    async def _handle_update(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self.router.dispatch(update)

    async def start(self):
        """Запуск бота."""
        if self._running:
            logger.warning("Bot is already running")
            return

        try:
            await self.initialize()

            logger.info(f"Starting bot in {self.config.mode} mode...")
            self._running = True

            await self.application.initialize()
            await self.application.start()

            if self.config.mode == "polling":
                await self.application.updater.start_polling(
                    drop_pending_updates=True, allowed_updates=Update.ALL_TYPES
                )
            elif self.config.mode == "webhook":
                await self.application.updater.start_webhook(
                    listen=self.config.webhook_listen,
                    port=self.config.webhook_port,
                    url_path=self.config.webhook_path,
                    webhook_url=self.config.webhook_url,
                    cert=self.config.webhook_cert,
                    key=self.config.webhook_key,
                    drop_pending_updates=True,
                )
            else:
                raise ValueError(f"Unknown mode: {self.config.mode}")

            logger.info("✅ Bot started successfully! Listening for updates...")

            # Ожидание события остановки вместо бесконечного цикла
            await self._stop_event.wait()
            logger.info("Stop event received, shutting down...")

        except Exception as e:
            logger.error(f"Error starting bot: {e}")
            self._running = False
            raise

    def request_stop(self):
        """Разбудить start(); безопасно вызывать из обработчика сигнала."""
        self._stop_event.set()

    async def stop(self):
        """Остановка бота."""
        if not self._running:
            return

        logger.info("Stopping bot...")
        self._running = False

        # Устанавливаем событие остановки
        self._stop_event.set()

        try:
            if self.application and self.application.updater and self.application.updater.running:
                await self.application.updater.stop()

            # активные сессии завершаются без сообщений пользователю
            if self.router:
                await self.router.shutdown()

            if self.application:
                await self.application.stop()
                await self.application.shutdown()

            logger.info("Bot stopped successfully")

        except Exception as e:
            logger.error(f"Error stopping bot: {e}")

    def get_bot_info(self) -> dict:
        """Получить информацию о боте."""
        return {
            "bot_username": self.config.bot_username,
            "mode": self.config.mode,
            "running": self._running,
            "hands": self.url_processor.hand_names() if self.url_processor else [],
            "active_sessions": len(self.router.registry) if self.router else 0,
        }
