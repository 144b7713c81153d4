"""
Загрузка описаний ручек из JSON и YAML.

Структура проверяется через Pydantic, после чего применяются правила,
которые нельзя выразить схемой: имя ручки совпадает с ключом, URL параметр
не может быть optional без значения по умолчанию, значение по умолчанию
разбирается по типу параметра. Ошибки собираются по всем ручкам сразу.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from .errors import DescriptionValidationError
from .models import HandDescriptor, ParamDestination, ParamInfo, parse_value
from .source import DescriptionsSource

logger = logging.getLogger(__name__)


def _format_pydantic_errors(error: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    ]


def _validate_param(param: ParamInfo) -> List[str]:
    errors = []
    if param.destination is ParamDestination.URL and param.optional and not param.has_default:
        errors.append("URL placed param can't be marked as optional")
    if param.has_default:
        raw = param.default_value
        if isinstance(raw, bool) or not isinstance(raw, (str, int)):
            errors.append("Error on default value: failed to get default value as a string")
        else:
            try:
                param.default_value = parse_value(param.type, str(raw))
            except ValueError as e:
                errors.append(f"Error on default value {e}")
    return errors


def _validate_hand(hand_name: str, raw: Any) -> Union[HandDescriptor, List[str]]:
    if not isinstance(raw, dict):
        return [f"hand record must be a mapping, got {type(raw).__name__}"]
    try:
        hand = HandDescriptor.model_validate(raw)
    except ValidationError as e:
        return _format_pydantic_errors(e)

    errors = []
    if hand.name != hand_name:
        errors.append(
            f"difference between hand name in field {hand.name} and in map {hand_name}"
        )
    for param_name, param in hand.parameters.items():
        if not param.name:
            param.name = param_name
        param_errors = _validate_param(param)
        if param_errors:
            errors.append(str(DescriptionValidationError(param_name, param_errors)))
    return errors or hand


def build_source(container: Any) -> DescriptionsSource:
    """
    Провалидировать разобранный документ и построить источник описаний.

    Raises:
        DescriptionValidationError: со списком всех найденных ошибок
    """
    if not isinstance(container, dict):
        raise DescriptionValidationError("", ["descriptions must be a mapping of hand name to record"])

    hands: Dict[str, HandDescriptor] = {}
    errors: List[str] = []
    for hand_name, raw in container.items():
        result = _validate_hand(str(hand_name), raw)
        if isinstance(result, HandDescriptor):
            hands[result.name] = result
        else:
            errors.append(str(DescriptionValidationError(str(hand_name), result)))

    if errors:
        raise DescriptionValidationError("", errors)
    return DescriptionsSource(hands)


def load_from_json(text: str) -> DescriptionsSource:
    return build_source(json.loads(text))


def load_from_yaml(text: str) -> DescriptionsSource:
    return build_source(yaml.safe_load(text))


def load_descriptions(path: Union[str, Path]) -> DescriptionsSource:
    """Загрузить описания из файла, формат выбирается по расширению."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    ext = path.suffix.lower()
    if ext == ".json":
        source = load_from_json(text)
    elif ext in (".yaml", ".yml"):
        source = load_from_yaml(text)
    else:
        raise DescriptionValidationError(str(path), [f"Unknown file extension {ext}"])
    logger.info(f"Loaded {len(source)} hand(s) from {path}")
    return source
