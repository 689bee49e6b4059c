# start_app.py
"""Launch the API server, optionally creating the first admin account."""

from __future__ import annotations

import argparse
import os
import sys

import uvicorn
from dotenv import load_dotenv

import config


def main(argv: list[str] | None = None) -> None:
    """Load settings from ``.env``/``config.json`` and start the API."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="0.0.0.0")  # nosec B104: local development
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument(
        "--admin-email", help="Seed an admin account when none exists yet"
    )
    parser.add_argument("--admin-password")
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args(argv)

    load_dotenv()  # load environment variables from a .env file

    if args.admin_email:
        if not args.admin_password:
            parser.error("--admin-password is required with --admin-email")
        os.environ["ADMIN_EMAIL"] = args.admin_email
        os.environ["ADMIN_PASSWORD"] = args.admin_password

    config.get_settings.cache_clear()
    settings = config.get_settings()

    try:
        uvicorn.run(
            "smartcafe.app.main:app",
            host=args.host,
            port=args.port,
            log_level=settings.log_level.lower(),
            reload=args.reload,
        )
    except ModuleNotFoundError as exc:
        missing = exc.name or str(exc)
        print(
            f"Missing dependency: {missing}. Install it with 'pip install {missing}'",
            file=sys.stderr,
        )
        raise SystemExit(1)


if __name__ == "__main__":
    main()
