"""
Запуск HandWitch Telegram бота из командной строки.

Использование:
    handwitch --config config.yaml
    handwitch --path descriptions.yaml --token <token>
    handwitch --check --path descriptions.yaml

Переменные окружения (.env файл):
    TELEGRAM_BOT_TOKEN          Токен Telegram бота (обязательно)
    TELEGRAM_BOT_USERNAME       Имя бота для команд вида /help@bot
    TELEGRAM_MODE               polling или webhook (default: polling)
    HANDWITCH_PATH              Файл описаний ручек (default: descriptions.yaml)
    HANDWITCH_WHITE_LIST        Белый список пользователей (JSON)
    LOG_LEVEL                   Уровень логирования (default: INFO)
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core.errors import DescriptionValidationError
from .telegram.bot import HandWitchTelegramBot, build_auth, build_url_processor
from .telegram.config import TelegramBotConfig


def setup_logging(level: int, log_file: Optional[str] = "logs/handwitch.log") -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def setup_signal_handlers(bot: HandWitchTelegramBot) -> None:
    """Настройка обработчиков сигналов для graceful shutdown."""
    loop = asyncio.get_running_loop()

    def signal_handler(signum):
        print(f"\nПолучен сигнал {signum}, выполняю graceful shutdown...")
        bot.request_stop()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, signal_handler, signum)
        except NotImplementedError:
            # Windows: остаётся KeyboardInterrupt
            pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="handwitch",
        description="HandWitch - HTTP запросы по описаниям ручек из Telegram",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Файл конфигурации (JSON или YAML)")
    parser.add_argument("--path", help="Файл описаний ручек")
    parser.add_argument("--log", help="Уровень логирования [debug|info|warning|error]")
    parser.add_argument("--token", help="Токен Telegram бота")
    parser.add_argument("--whitelist", help="Белый список пользователей (JSON)")
    parser.add_argument("--formatting", help="Форматирование ответов [markdown|html]")
    parser.add_argument("--tgproxy", help="Прокси для клиента Telegram")
    parser.add_argument(
        "--check", "-c",
        action="store_true",
        help="Только проверить конфигурацию и описания, не запускать бота",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Детальный вывод логов",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> TelegramBotConfig:
    return TelegramBotConfig.load(
        args.config,
        descriptions_path=args.path,
        log_level=args.log.upper() if args.log else None,
        bot_token=args.token,
        white_list_path=args.whitelist,
        formatting=args.formatting,
        proxy=args.tgproxy,
    )


def check_components(config: TelegramBotConfig, require_token: bool = True) -> bool:
    """Проверка конфигурации, описаний ручек и белого списка."""
    print("🧪 Проверка компонентов...")

    errors = config.validate()
    if not require_token:
        errors = [error for error in errors if "TELEGRAM_BOT_TOKEN" not in error]
    if errors:
        print("❌ Ошибки конфигурации:")
        for error in errors:
            print(f"   • {error}")
        return False

    try:
        url_processor = build_url_processor(config)
    except DescriptionValidationError as e:
        print(f"❌ Ошибки в описаниях {config.descriptions_path}:")
        for error in e.errors:
            print(f"   • {error}")
        return False
    except (OSError, ValueError) as e:
        print(f"❌ Не удалось загрузить описания {config.descriptions_path}: {e}")
        return False
    print(f"✅ Описания загружены: {', '.join(url_processor.hand_names()) or 'нет ручек'}")

    try:
        build_auth(config)
    except (OSError, ValueError) as e:
        print(f"❌ Не удалось загрузить белый список {config.white_list_path}: {e}")
        return False

    print("🎉 Все проверки пройдены!")
    return True


async def run_bot(config: TelegramBotConfig) -> bool:
    """Запуск бота."""
    print("🚀 Запуск HandWitch Telegram Bot...")
    print(f"📝 Режим: {config.mode}")

    bot = HandWitchTelegramBot(config)
    try:
        setup_signal_handlers(bot)
        print("📱 Нажмите Ctrl+C для остановки")
        await bot.start()
    except KeyboardInterrupt:
        print("\n🛑 Получен сигнал остановки")
    except Exception as e:
        print(f"❌ Критическая ошибка: {e}")
        logging.exception("Критическая ошибка при запуске бота")
        return False
    finally:
        await bot.stop()
        print("👋 Бот остановлен")

    return True


async def main(argv: Optional[List[str]] = None) -> int:
    """Главная функция."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except (OSError, ValueError, TypeError) as e:
        print(f"❌ Не удалось загрузить конфигурацию: {e}")
        return 1

    level = logging.DEBUG if args.verbose else config.log_level_int
    setup_logging(level)
    logging.getLogger(__name__).debug(str(config))

    if not check_components(config, require_token=not args.check):
        return 1

    if args.check:
        print("✅ Проверка компонентов завершена успешно")
        return 0

    success = await run_bot(config)
    return 0 if success else 1


def run() -> None:
    """Точка входа console script."""
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        print("\n🛑 Программа прервана пользователем")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
