"""Ошибки уровня сессий и транспорта."""

from ..core.errors import HandWitchError


class TransportError(HandWitchError):
    """Сообщение не удалось отправить в чат."""


class SessionTimeoutError(HandWitchError):
    """Пользователь не ответил за отведённое время."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Session expired after {timeout:g} seconds of inactivity")


class CommandError(HandWitchError):
    """Некорректная команда или аргументы команды."""
