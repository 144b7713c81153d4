"""
Протокол кнопок и маршрутизация строки ввода.

Все тексты кнопок собраны в одной таблице: по ним строится клавиатура,
и по ним же разбираются ответы пользователя. Маршрутизатор - упорядоченный
список обработчиков; побеждает первый, кто сообщил matched=True, даже если
он не вернул нового состояния.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple


class ExtraButton(Enum):
    """Управляющие кнопки под списком параметров."""
    CANCEL = "cancel"
    OK = "ok"
    HELP = "help"


MARKER_PREFIX = "🤖"

# Префикс кнопки справки по параметру, после него пробел и имя параметра
PARAM_HELP_MARKER = f"{MARKER_PREFIX} help"

BUTTON_MARKERS: Dict[ExtraButton, str] = {
    ExtraButton.HELP: f"{MARKER_PREFIX} hand help",
    ExtraButton.OK: f"{MARKER_PREFIX} Start!",
    ExtraButton.CANCEL: f"{MARKER_PREFIX} cancel",
}

RouteResult = Tuple[Optional[Any], bool]
Matcher = Callable[[str], Awaitable[RouteResult]]

NOT_MATCHED: RouteResult = (None, False)


def is_button(text: str, button: ExtraButton) -> bool:
    return text == BUTTON_MARKERS[button]


def is_control_text(text: str) -> bool:
    """Текст пришёл с одной из кнопок бота."""
    return text.startswith(MARKER_PREFIX)


def param_help_button(param_name: str) -> str:
    return f"{PARAM_HELP_MARKER} {param_name}"


def parse_param_help(text: str) -> Optional[str]:
    """Имя параметра из кнопки справки или None, если это не она."""
    prefix = PARAM_HELP_MARKER + " "
    if not text.startswith(prefix):
        return None
    name = text[len(prefix):].strip()
    return name or None


def build_keyboard_rows(missing_names: Iterable[str], buttons: Sequence[ExtraButton]) -> List[List[str]]:
    """
    Раскладка клавиатуры: пара (параметр, справка) на каждый недостающий
    параметр и последней строкой - управляющие кнопки.
    """
    rows = [[name, param_help_button(name)] for name in missing_names]
    if buttons:
        rows.append([BUTTON_MARKERS[button] for button in buttons])
    return rows


async def apply_routers(text: str, routers: Sequence[Matcher]) -> RouteResult:
    for router in routers:
        state, matched = await router(text)
        if matched:
            return state, True
    return NOT_MATCHED
