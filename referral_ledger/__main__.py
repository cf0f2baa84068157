"""Запуск сервиса: python -m referral_ledger [--dev] [--host H] [--port P].

Хост и порт по умолчанию берутся из SERVER__HOST / SERVER__PORT,
флаги командной строки их переопределяют.
"""

import argparse
from collections.abc import Sequence

import uvicorn

from referral_ledger.config.models import ServerSettings

APP_PATH = "referral_ledger.main:app"


def build_parser(server: ServerSettings) -> argparse.ArgumentParser:
    """Собрать парсер аргументов с умолчаниями из настроек сервера."""
    parser = argparse.ArgumentParser(
        prog="python -m referral_ledger",
        description="Referral Ledger: учёт рефералов, бонусов и статистики",
    )
    parser.add_argument(
        "--dev", action="store_true", help="hot-reload при изменении кода"
    )
    parser.add_argument("--host", default=server.host, help=f"по умолчанию {server.host}")
    parser.add_argument(
        "--port", type=int, default=server.port, help=f"по умолчанию {server.port}"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Запустить uvicorn с приложением referral_ledger.main:app."""
    from referral_ledger.config.settings import settings

    args = build_parser(settings.server).parse_args(argv)

    reload_options = (
        {
            "reload": True,
            "reload_includes": ["referral_ledger/**/*.py", "config.yaml"],
            "reload_excludes": [".venv/**", "data/**", "tests/**"],
        }
        if args.dev
        else {}
    )
    uvicorn.run(APP_PATH, host=args.host, port=args.port, **reload_options)


if __name__ == "__main__":
    main()
