"""
Иерархия исключений HandWitch.

Классификация:
- ошибки разбора параметров (не фатальны, сообщаются пользователю)
- ошибки поиска ручек и параметров
- ошибки выполнения запроса
- ошибки валидации описаний ручек
"""

from typing import List


class HandWitchError(Exception):
    """Базовое исключение проекта."""


class ParamParseError(HandWitchError, ValueError):
    """Значение параметра не удалось разобрать из строки."""

    def __init__(self, param_name: str, raw: str, reason: str):
        self.param_name = param_name
        self.raw = raw
        self.reason = reason
        super().__init__(f"invalid value {raw!r} for param {param_name}: {reason}")


class ParamNotFoundError(HandWitchError, LookupError):
    """У ручки нет параметра с таким именем."""

    def __init__(self, param_name: str):
        self.param_name = param_name
        super().__init__(f"Can't find param {param_name}")


class HandNotFoundError(HandWitchError, LookupError):
    """Ручка с таким именем не описана."""

    def __init__(self, hand_name: str):
        self.hand_name = hand_name
        super().__init__(f"Can't find hand {hand_name}")


class HandExecutionError(HandWitchError):
    """Ошибка при выполнении HTTP запроса или рендеринге ответа."""


class DescriptionValidationError(HandWitchError):
    """Ошибки в файле описаний ручек, собранные по всем сущностям."""

    def __init__(self, field: str, errors: List[str]):
        self.field = field
        self.errors = list(errors)
        details = "\n".join(self.errors)
        super().__init__(f"Error(s) on processing entity {field}:\n{details}")
