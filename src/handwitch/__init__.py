"""
HandWitch - HTTP "ручки" из Telegram.

Позволяет вызывать заранее описанные HTTP запросы (hands) через диалог
с ботом: недостающие параметры запрашиваются у пользователя, ответ
рендерится по шаблону.
"""

__version__ = "1.1.0"
