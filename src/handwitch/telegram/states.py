"""
Машина состояний сбора параметров одной команды /process.

Состояния:
- StartState: разбор аргументов из первого сообщения
- InquireParamsState: дозапрос недостающих параметров (если их нет - идём дальше)
- QueryParamState: ввод значения одного параметра
- FinishState: выполнение запроса и отправка результата
- CancelState: отмена

Каждое состояние - dataclass только с нужными ему полями, переходы
выполняет ParamsStateMachine.step. None вместо следующего состояния
означает завершение. Любое исключение из состояния прерывает машину.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..core.descriptors import HandProcessor, ParamProcessor
from ..core.errors import ParamNotFoundError, ParamParseError
from .buttons import (
    NOT_MATCHED, ExtraButton, Matcher, RouteResult, apply_routers,
    is_button, is_control_text, parse_param_help
)
from .transport import Transport

logger = logging.getLogger(__name__)

CANCELED_MESSAGE = "Canceled"
EMPTY_RESPONSE_MESSAGE = "Empty response"


@dataclass
class StartState:
    arguments: str


@dataclass
class InquireParamsState:
    params: Dict[str, Any]


@dataclass
class QueryParamState:
    param: ParamProcessor
    params: Dict[str, Any]
    missing: Dict[str, ParamProcessor]


@dataclass
class FinishState:
    params: Dict[str, Any]


@dataclass
class CancelState:
    pass


State = Union[StartState, InquireParamsState, QueryParamState, FinishState, CancelState]


def split_param_row(row: str) -> Optional[Tuple[str, str]]:
    """Строка вида "name value"; значение может содержать пробелы."""
    fields = row.split(maxsplit=1)
    if len(fields) != 2:
        return None
    return fields[0], fields[1].strip()


def parse_param_row(hand: HandProcessor, row: str) -> Tuple[str, Any]:
    """
    Разобрать строку "name value" в имя и значение параметра ручки.

    Raises:
        ParamParseError: строка не из двух полей или значение не разбирается
        ParamNotFoundError: у ручки нет такого параметра
    """
    pair = split_param_row(row)
    if pair is None:
        fields = row.split()
        raise ParamParseError(
            fields[0] if fields else "",
            row,
            f"row split on {len(fields)} args instead of 2",
        )
    name, raw = pair
    return name, hand.get_param(name).parse_from_string(raw)


class ParamsStateMachine:
    """Проводит одну команду /process от аргументов до результата."""

    def __init__(self, hand: HandProcessor, transport: Transport, log: Optional[Any] = None):
        self.hand = hand
        self.transport = transport
        self.logger = log or logger
        self._handlers = {
            StartState: self._do_start,
            InquireParamsState: self._do_inquire_params,
            QueryParamState: self._do_query_param,
            FinishState: self._do_finish,
            CancelState: self._do_cancel,
        }

    async def run(self, arguments: str) -> None:
        state: Optional[State] = StartState(arguments)
        while state is not None:
            state = await self.step(state)

    async def step(self, state: State) -> Optional[State]:
        handler = self._handlers.get(type(state))
        if handler is None:
            raise TypeError(f"Unknown state {state!r}")
        self.logger.debug(f"Entering {type(state).__name__}")
        return await handler(state)

    async def _parse_rows(self, rows: Iterable[str], params: Dict[str, Any]) -> None:
        for row in rows:
            if not row.strip():
                continue
            try:
                name, value = parse_param_row(self.hand, row)
            except (ParamParseError, ParamNotFoundError) as e:
                await self.transport.send(f'Failed to parse param: "{row.split()[0]}" {e}')
                continue
            params[name] = value

    # ---------------------------------------------------------------- start

    async def _do_start(self, state: StartState) -> State:
        params: Dict[str, Any] = {}
        # первая строка - имя ручки, её уже разобрал роутер
        await self._parse_rows(state.arguments.split("\n")[1:], params)
        return InquireParamsState(params)

    # -------------------------------------------------------------- inquery

    def _missing_params(self, params: Dict[str, Any]) -> Dict[str, ParamProcessor]:
        return {
            param.name: param
            for param in self.hand.get_required_params()
            if param.name not in params
        }

    def _build_routers(self, params: Dict[str, Any], missing: Dict[str, ParamProcessor]) -> List[Matcher]:

        async def param_help(text: str) -> RouteResult:
            name = parse_param_help(text)
            if name is None:
                return NOT_MATCHED
            try:
                param = self.hand.get_param(name)
            except ParamNotFoundError:
                self.logger.debug(f"Failed to apply help: no such param {name}")
                return NOT_MATCHED
            await self.transport.send(param.help_text())
            return None, True

        async def select_param(text: str) -> RouteResult:
            param = missing.get(text)
            if param is None:
                return NOT_MATCHED
            return QueryParamState(param, params, missing), True

        async def hand_help(text: str) -> RouteResult:
            if not is_button(text, ExtraButton.HELP):
                return NOT_MATCHED
            await self.transport.send(self.hand.help_text())
            return None, True

        async def confirm(text: str) -> RouteResult:
            if not is_button(text, ExtraButton.OK):
                return NOT_MATCHED
            if missing:
                await self.transport.send("Not all params specified!")
                return NOT_MATCHED
            return FinishState(params), True

        async def cancel(text: str) -> RouteResult:
            if not is_button(text, ExtraButton.CANCEL):
                return NOT_MATCHED
            return CancelState(), True

        async def bulk_parse(text: str) -> RouteResult:
            if is_control_text(text):
                return NOT_MATCHED
            rows = text.splitlines()
            if not any(split_param_row(row) for row in rows):
                return NOT_MATCHED
            await self._parse_rows(rows, params)
            return InquireParamsState(params), True

        return [param_help, select_param, hand_help, confirm, cancel, bulk_parse]

    async def _do_inquire_params(self, state: InquireParamsState) -> State:
        missing = self._missing_params(state.params)
        if not missing:
            return FinishState(state.params)

        routers = self._build_routers(state.params, missing)
        all_params = self.hand.get_params()
        while True:
            buttons = [ExtraButton.HELP, ExtraButton.CANCEL]
            if not missing:
                buttons = [ExtraButton.OK, ExtraButton.HELP, ExtraButton.CANCEL]
            await self.transport.request_params(missing, all_params, state.params, buttons)

            text = await self.transport.get()
            next_state, matched = await apply_routers(text, routers)
            if matched:
                if next_state is not None:
                    return next_state
                continue
            self.logger.debug(f"No router matched {text!r}")
            await self.transport.send(f'I don\'t know what is: "{text}"')

    # ---------------------------------------------------------- query param

    async def _do_query_param(self, state: QueryParamState) -> State:
        name = state.param.name
        await self.transport.send(f'Input value for param: "{name}"')
        while True:
            raw = await self.transport.get()
            try:
                value = state.param.parse_from_string(raw)
            except ParamParseError as e:
                await self.transport.send(f"Failed to parse param: {e}")
                continue
            break

        state.missing.pop(name, None)
        state.params[name] = value
        return InquireParamsState(state.params)

    # ---------------------------------------------------------------- final

    async def _do_finish(self, state: FinishState) -> None:
        rendered = await self.hand.process(state.params, self.logger)
        if not rendered.strip():
            await self.transport.send(EMPTY_RESPONSE_MESSAGE)
            return None
        await self.transport.send(rendered, formatted=True)
        return None

    async def _do_cancel(self, state: CancelState) -> None:
        await self.transport.send(CANCELED_MESSAGE)
        return None
