"""
Конфигурация Telegram бота HandWitch.

Источники в порядке возрастания приоритета: значения по умолчанию,
переменные окружения (.env), файл конфигурации (JSON или YAML),
флаги командной строки.

Формат файла:

    path: descriptions.yaml
    log_level: info
    telegram:
      token: "..."
      white_list: whitelist.json
      formatting: MarkDown
      proxy: http://proxy:3128
    hook:
      url: https://example.com/telegram
      cert: cert.pem
      key: key.pem
    session:
      idle_timeout: 600
      queue_size: 16
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv

from .transport import normalize_parse_mode

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class TelegramBotConfig:
    """Конфигурация Telegram бота"""

    # Telegram API
    bot_token: str = ""
    bot_username: str = ""
    mode: str = "polling"  # polling или webhook
    proxy: Optional[str] = None

    # Webhook
    webhook_url: Optional[str] = None
    webhook_listen: str = "0.0.0.0"
    webhook_port: int = 8443
    webhook_cert: Optional[str] = None
    webhook_key: Optional[str] = None

    # Описания ручек и доступ
    descriptions_path: str = "descriptions.yaml"
    white_list_path: Optional[str] = None
    formatting: Optional[str] = "MarkDown"

    # Сессии
    session_idle_timeout_seconds: int = 600
    session_queue_size: int = 16
    request_timeout_seconds: int = 30

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "TelegramBotConfig":
        """Создание конфигурации из переменных окружения"""
        load_dotenv(env_file)
        webhook_url = os.getenv("TELEGRAM_WEBHOOK_URL") or None
        return cls(
            bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
            bot_username=os.getenv("TELEGRAM_BOT_USERNAME", ""),
            mode=os.getenv("TELEGRAM_MODE", "webhook" if webhook_url else "polling"),
            proxy=os.getenv("HANDWITCH_PROXY") or None,

            webhook_url=webhook_url,
            webhook_listen=os.getenv("TELEGRAM_WEBHOOK_LISTEN", "0.0.0.0"),
            webhook_port=_env_int("TELEGRAM_WEBHOOK_PORT", 8443),
            webhook_cert=os.getenv("TELEGRAM_WEBHOOK_CERT") or None,
            webhook_key=os.getenv("TELEGRAM_WEBHOOK_KEY") or None,

            descriptions_path=os.getenv("HANDWITCH_PATH", "descriptions.yaml"),
            white_list_path=os.getenv("HANDWITCH_WHITE_LIST") or None,
            formatting=os.getenv("HANDWITCH_FORMATTING", "MarkDown"),

            session_idle_timeout_seconds=_env_int("SESSION_IDLE_TIMEOUT_SECONDS", 600),
            session_queue_size=_env_int("SESSION_QUEUE_SIZE", 16),
            request_timeout_seconds=_env_int("REQUEST_TIMEOUT_SECONDS", 30),

            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @staticmethod
    def read_file(path: Union[str, Path]) -> Dict[str, Any]:
        """Прочитать файл конфигурации (JSON или YAML по расширению)."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def apply_file(self, data: Dict[str, Any]) -> "TelegramBotConfig":
        """Перекрыть значения данными из файла конфигурации."""
        telegram = data.get("telegram") or {}
        hook = data.get("hook") or {}
        session = data.get("session") or {}

        # "formating" - написание из старых конфигов
        formatting = telegram.get("formatting", telegram.get("formating"))

        self.update(
            descriptions_path=data.get("path"),
            log_level=data.get("log_level"),
            bot_token=telegram.get("token"),
            bot_username=telegram.get("username"),
            white_list_path=telegram.get("white_list"),
            formatting=formatting,
            proxy=telegram.get("proxy"),
            webhook_url=hook.get("url"),
            webhook_listen=hook.get("listen"),
            webhook_port=hook.get("port"),
            webhook_cert=hook.get("cert"),
            webhook_key=hook.get("key"),
            session_idle_timeout_seconds=session.get("idle_timeout"),
            session_queue_size=session.get("queue_size"),
            request_timeout_seconds=session.get("request_timeout"),
        )
        if hook.get("url") and "mode" not in data:
            self.mode = "webhook"
        if data.get("mode"):
            self.mode = data["mode"]
        return self

    def update(self, **overrides: Any) -> "TelegramBotConfig":
        """Перекрыть значения; None означает "не задано"."""
        known = {field.name for field in fields(self)}
        for name, value in overrides.items():
            if name not in known:
                raise TypeError(f"Unknown config field {name}")
            if value is not None:
                setattr(self, name, value)
        return self

    @classmethod
    def load(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        env_file: Optional[Union[str, Path]] = None,
        **overrides: Any,
    ) -> "TelegramBotConfig":
        """Собрать конфигурацию из окружения, файла и явных значений."""
        config = cls.from_env(env_file)
        if config_path:
            logger.info(f"Used config: {config_path}")
            config.apply_file(cls.read_file(config_path))
        return config.update(**overrides)

    @property
    def parse_mode(self) -> Optional[str]:
        return normalize_parse_mode(self.formatting)

    @property
    def webhook_path(self) -> str:
        """Путь, на котором слушает webhook сервер: путь из webhook_url без ведущего "/"."""
        if not self.webhook_url:
            return ""
        return urlparse(self.webhook_url).path.strip("/")

    @property
    def log_level_int(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)

    def validate(self) -> List[str]:
        """Валидация конфигурации"""
        errors = []

        # Обязательные поля
        if not self.bot_token:
            errors.append("TELEGRAM_BOT_TOKEN is required")

        # Валидация режима работы
        if self.mode not in ["polling", "webhook"]:
            errors.append("TELEGRAM_MODE must be 'polling' or 'webhook'")

        # Валидация webhook
        if self.mode == "webhook" and not self.webhook_url:
            errors.append("TELEGRAM_WEBHOOK_URL is required for webhook mode")

        if bool(self.webhook_cert) != bool(self.webhook_key):
            errors.append("Webhook cert and key must be set together")

        if not self.descriptions_path:
            errors.append("Descriptions path is required")

        try:
            normalize_parse_mode(self.formatting)
        except ValueError as e:
            errors.append(str(e))

        if self.log_level.upper() not in LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        # Валидация лимитов
        if self.session_idle_timeout_seconds < 0:
            errors.append("SESSION_IDLE_TIMEOUT_SECONDS must not be negative")

        if self.session_queue_size <= 0:
            errors.append("SESSION_QUEUE_SIZE must be positive")

        if self.request_timeout_seconds <= 0:
            errors.append("REQUEST_TIMEOUT_SECONDS must be positive")

        return errors

    def __str__(self) -> str:
        """Строковое представление конфигурации (без токена!)"""
        return (
            f"TelegramBotConfig(\n"
            f"  bot_username={self.bot_username},\n"
            f"  mode={self.mode},\n"
            f"  webhook_url={self.webhook_url},\n"
            f"  descriptions_path={self.descriptions_path},\n"
            f"  white_list_path={self.white_list_path},\n"
            f"  formatting={self.formatting},\n"
            f"  proxy={self.proxy},\n"
            f"  session_idle_timeout_seconds={self.session_idle_timeout_seconds},\n"
            f"  session_queue_size={self.session_queue_size},\n"
            f"  request_timeout_seconds={self.request_timeout_seconds},\n"
            f"  log_level={self.log_level}\n"
            f")"
        )
