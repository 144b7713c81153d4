"""
Модели описаний ручек (hands) и их параметров.

Pydantic модели используются и загрузчиком описаний (валидация JSON/YAML),
и движком сессий (метаданные параметров, правило обязательности).
"""

import re
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class ParamDestination(str, Enum):
    """Куда подставляется параметр: в путь URL или в query string."""
    URL = "URL"
    QUERY = "query"

    def to_human(self) -> str:
        return "URL Param" if self is ParamDestination.URL else "Query Param"


class ParamType(str, Enum):
    """Тип значения параметра."""
    INTEGER = "integer"
    STRING = "string"

    def to_human(self) -> str:
        return "Integer" if self is ParamType.INTEGER else "String"


def parse_value(param_type: ParamType, raw: str) -> Any:
    """
    Разбор строкового значения по типу параметра.

    Integer: необязательный знак и десятичные цифры, без пробелов и локалей.
    String: значение как есть.

    Raises:
        ValueError: если строка не соответствует типу
    """
    if param_type is ParamType.STRING:
        return raw
    if param_type is ParamType.INTEGER:
        if not _INTEGER_RE.fullmatch(raw):
            raise ValueError(f"{raw!r} is not a base-10 integer")
        return int(raw)
    raise ValueError(f"Unknown type {param_type}")


class ParamInfo(BaseModel):
    """Описание параметра ручки."""

    name: str = ""
    help: str = ""
    destination: ParamDestination
    type: ParamType
    optional: bool = False
    default_value: Optional[Any] = None

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    @property
    def is_required(self) -> bool:
        """
        Параметр обязателен, если он в URL и без значения по умолчанию,
        либо в query, не помечен optional и без значения по умолчанию.
        """
        if self.has_default:
            return False
        if self.destination is ParamDestination.URL:
            return True
        return not self.optional


class HandDescriptor(BaseModel):
    """Полное описание ручки в файле описаний."""

    name: str = Field(default="", validation_alias=AliasChoices("name", "url_name"))
    url_template: str = Field(validation_alias=AliasChoices("url_template", "URL_template"))
    body: str = ""
    parameters: Dict[str, ParamInfo] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("parameters", "params"),
    )
    help: str = ""
