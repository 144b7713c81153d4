#!/usr/bin/env python3
"""
Скрипт для запуска HandWitch Telegram Bot без установки пакета.

Использование:
1. Установите зависимости:
   pip install -e .

2. Создайте файл .env с необходимыми переменными:
   TELEGRAM_BOT_TOKEN=your_bot_token_here
   HANDWITCH_PATH=descriptions.yaml
   HANDWITCH_WHITE_LIST=whitelist.json  # опционально

3. Запустите бота:
   python run_telegram_bot.py --config config.yaml

4. Только проверить описания ручек:
   python run_telegram_bot.py --check --path descriptions.yaml
"""

import sys
from pathlib import Path

# Добавляем src в PYTHONPATH
sys.path.insert(0, str(Path(__file__).parent / "src"))

from handwitch.cli import run


def print_banner():
    """Вывод баннера."""
    banner = """
╔══════════════════════════════════════════════════════════════╗
║                   HandWitch Telegram Bot                     ║
║                                                              ║
║  🤖 HTTP запросы по описаниям ручек прямо из Telegram         ║
╚══════════════════════════════════════════════════════════════╝
"""
    print(banner)


if __name__ == "__main__":
    print_banner()
    run()
