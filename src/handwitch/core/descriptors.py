"""
Процессоры ручек и параметров.

Основные классы:
- ParamProcessor: разбор значения параметра и справка по нему
- HandProcessor: список параметров, справка и выполнение запроса
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from jinja2 import Environment, StrictUndefined, TemplateError

from .errors import HandExecutionError, ParamNotFoundError, ParamParseError
from .models import HandDescriptor, ParamDestination, ParamInfo, parse_value

logger = logging.getLogger(__name__)

_url_env = Environment(undefined=StrictUndefined, autoescape=False)
_body_env = Environment(autoescape=False)


class ParamProcessor:
    """Обёртка над ParamInfo для движка сессий."""

    def __init__(self, info: ParamInfo):
        self.info = info

    @property
    def name(self) -> str:
        return self.info.name

    def is_required(self) -> bool:
        return self.info.is_required

    def parse_from_string(self, raw: str) -> Any:
        try:
            return parse_value(self.info.type, raw)
        except ValueError as e:
            raise ParamParseError(self.name, raw, str(e)) from e

    def help_text(self) -> str:
        return (
            f"{self.name}({self.info.type.to_human()})\t"
            f"{self.info.destination.to_human()}\n\t{self.info.help}\n"
        )

    def __repr__(self) -> str:
        return f"ParamProcessor({self.name!r})"


class HandProcessor:
    """Ручка: параметры, справка, выполнение HTTP запроса."""

    def __init__(self, descriptor: HandDescriptor, request_timeout: float = 30.0):
        self.descriptor = descriptor
        self.request_timeout = request_timeout
        self._params = {
            name: ParamProcessor(info) for name, info in descriptor.parameters.items()
        }

    @property
    def name(self) -> str:
        return self.descriptor.name

    def get_params(self) -> Dict[str, ParamProcessor]:
        return dict(self._params)

    def get_param(self, name: str) -> ParamProcessor:
        try:
            return self._params[name]
        except KeyError:
            raise ParamNotFoundError(name) from None

    def get_required_params(self) -> List[ParamProcessor]:
        return [param for param in self._params.values() if param.is_required()]

    def help_text(self) -> str:
        lines = [
            f"Name: {self.descriptor.name}\n",
            f"URL template: {self.descriptor.url_template}\n",
            "Parameters:\n",
        ]
        for name in sorted(self._params):
            lines.append(self._params[name].help_text())
        return "".join(lines)

    def brief(self) -> str:
        summary = self.descriptor.help.strip().splitlines()
        if summary:
            return f"{self.descriptor.name} - {summary[0]}"
        return self.descriptor.name

    def _values_with_defaults(self, params: Dict[str, Any]) -> Dict[str, Any]:
        values = dict(params)
        for name, param in self._params.items():
            if name not in values and param.info.has_default:
                values[name] = param.info.default_value
        return values

    def _build_url(self, values: Dict[str, Any]) -> str:
        try:
            return _url_env.from_string(self.descriptor.url_template).render(**values)
        except TemplateError as e:
            raise HandExecutionError(f"Failed to build URL: {e}") from e

    def _build_query(self, values: Dict[str, Any]) -> Dict[str, str]:
        return {
            name: str(values[name])
            for name, param in self._params.items()
            if param.info.destination is ParamDestination.QUERY and name in values
        }

    async def _fetch(self, url: str, query: Dict[str, str], log: logging.Logger):
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params=query) as response:
                    final_url = str(response.url)
                    log.debug(f"Got response {response.status} from {final_url}")
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise HandExecutionError(f"Failed to read result: {e}") from e
        except ValueError as e:
            raise HandExecutionError(f"Failed to decode json result: {e}") from e
        return final_url, data

    async def process(self, params: Dict[str, Any], log: Optional[logging.Logger] = None) -> str:
        """
        Выполнить запрос ручки и отрендерить ответ.

        Args:
            params: собранные значения параметров
            log: логгер сессии

        Returns:
            Текст, полученный из шаблона body

        Raises:
            HandExecutionError: при любой ошибке построения запроса,
                сети, декодирования JSON или рендеринга
        """
        log = log or logger
        values = self._values_with_defaults(params)
        url = self._build_url(values)
        log.debug(f"Got URL {url}")

        final_url, data = await self._fetch(url, self._build_query(values), log)

        try:
            template = _body_env.from_string(self.descriptor.body)
            return template.render(
                response=data,
                meta={"url": final_url, "params": values},
            )
        except TemplateError as e:
            raise HandExecutionError(f"Failed to execute body template: {e}") from e
