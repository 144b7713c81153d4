"""
Авторизация пользователей бота по логину Telegram.

Гость (GUEST) не имеет доступа ни к одной команде, пользователь (USER) -
ко всем. Белый список хранится в JSON: либо список логинов, либо объект
{"users": [...]}.
"""

import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Iterable, Union

logger = logging.getLogger(__name__)


class Role(Enum):
    GUEST = "guest"
    USER = "user"


class Authorisation(ABC):
    """Роль пользователя по логину."""

    @abstractmethod
    def get_role_by_login(self, login: str) -> Role:
        ...

    def is_allowed(self, login: str) -> bool:
        try:
            return self.get_role_by_login(login) is Role.USER
        except Exception as e:
            logger.error(f"Failed to check user role {e}")
            return False


class DummyAuthorisation(Authorisation):
    """Пускает всех."""

    def get_role_by_login(self, login: str) -> Role:
        return Role.USER


class WhiteListAuthorisation(Authorisation):
    """Пускает только логины из списка (без учёта регистра и ведущего @)."""

    def __init__(self, logins: Iterable[str]):
        self._logins = {self._normalize(login) for login in logins}

    @staticmethod
    def _normalize(login: str) -> str:
        return str(login).strip().lstrip("@").lower()

    def get_role_by_login(self, login: str) -> Role:
        if login and self._normalize(login) in self._logins:
            return Role.USER
        return Role.GUEST

    def __len__(self) -> int:
        return len(self._logins)


def load_whitelist(path: Union[str, Path]) -> WhiteListAuthorisation:
    """
    Загрузить белый список из JSON файла.

    Raises:
        OSError: файл не читается
        ValueError: файл не JSON или имеет неверную структуру
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("users")
    if not isinstance(data, list) or not all(isinstance(item, (str, int)) for item in data):
        raise ValueError(f"Whitelist {path} must be a list of logins or {{\"users\": [...]}}")

    auth = WhiteListAuthorisation(str(item) for item in data)
    logger.info(f"Loaded whitelist {path}: {len(auth)} users")
    return auth
