"""
Ядро HandWitch: описания ручек, их загрузка и выполнение запросов.
"""

from .descriptors import HandProcessor, ParamProcessor
from .errors import (
    DescriptionValidationError, HandExecutionError, HandNotFoundError,
    HandWitchError, ParamNotFoundError, ParamParseError
)
from .loader import build_source, load_descriptions, load_from_json, load_from_yaml
from .models import HandDescriptor, ParamDestination, ParamInfo, ParamType, parse_value
from .source import DescriptionsSource, URLProcessor

__all__ = [
    "HandProcessor",
    "ParamProcessor",
    "DescriptionValidationError",
    "HandExecutionError",
    "HandNotFoundError",
    "HandWitchError",
    "ParamNotFoundError",
    "ParamParseError",
    "build_source",
    "load_descriptions",
    "load_from_json",
    "load_from_yaml",
    "HandDescriptor",
    "ParamDestination",
    "ParamInfo",
    "ParamType",
    "parse_value",
    "DescriptionsSource",
    "URLProcessor",
]
