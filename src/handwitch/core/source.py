"""
Источник описаний ручек и построение процессоров по имени.
"""

from typing import Dict, List

from .descriptors import HandProcessor
from .errors import HandNotFoundError
from .models import HandDescriptor


class DescriptionsSource:
    """Описания ручек в памяти, в порядке из файла."""

    def __init__(self, descriptions: Dict[str, HandDescriptor]):
        self._descriptions = dict(descriptions)

    def get_by_name(self, name: str) -> HandDescriptor:
        try:
            return self._descriptions[name]
        except KeyError:
            raise HandNotFoundError(name) from None

    def all_records(self) -> List[HandDescriptor]:
        return list(self._descriptions.values())

    def __len__(self) -> int:
        return len(self._descriptions)


class URLProcessor:
    """Строит HandProcessor по имени ручки и пишет общую справку."""

    def __init__(self, source: DescriptionsSource, request_timeout: float = 30.0):
        self.source = source
        self.request_timeout = request_timeout

    def get_hand(self, name: str) -> HandProcessor:
        return HandProcessor(self.source.get_by_name(name), self.request_timeout)

    def hand_names(self) -> List[str]:
        return [record.name for record in self.source.all_records()]

    def brief_help(self) -> str:
        lines = ["Available requests:\n\n"]
        for record in self.source.all_records():
            lines.append(HandProcessor(record).brief() + "\n")
        return "".join(lines)
