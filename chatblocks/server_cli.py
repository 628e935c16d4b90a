"""
chatblocks-server - run the chat backend under uvicorn.

Command line options are turned into the environment variables that
AppSettings reads, so they must be applied before ``chatblocks.main`` is
imported.

Usage:
    chatblocks-server --port 8080 --env prod.env
    chatblocks-server --database-url duckdb:///var/lib/chatblocks.db --max-steps 3
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

APP_IMPORT = "chatblocks.main:app"

# option dest -> AppSettings environment variable
_SETTING_OPTIONS = {
    "config_folder": "APP_CONFIG_DIR",
    "database_url": "CHAT_HISTORY_DB_URL",
    "max_steps": "MAX_STEPS",
    "turn_timeout": "TURN_TIMEOUT_SECONDS",
    "log_level": "LOG_LEVEL",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatblocks-server",
        description="Run the chatblocks streaming chat backend.",
    )
    parser.add_argument("--host", default=None, help="Bind address (default: CHATBLOCKS_HOST or 127.0.0.1).")
    parser.add_argument("--port", type=int, default=None, help="Port (default: PORT or 8000).")
    parser.add_argument("--env", dest="env_file", default=None, help="A .env file to load first.")
    parser.add_argument("--config-folder", default=None, help="Folder holding models.yml.")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL of the chat store.")
    parser.add_argument("--max-steps", type=int, default=None, help="Model steps allowed per turn.")
    parser.add_argument("--turn-timeout", type=float, default=None, help="Seconds allowed per turn.")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only).")
    parser.add_argument("--version", action="store_true", help="Print version and exit.")
    return parser


def settings_environment(args: argparse.Namespace) -> Dict[str, str]:
    """Environment overrides for the options that were given."""
    env: Dict[str, str] = {}
    for dest, variable in _SETTING_OPTIONS.items():
        value = getattr(args, dest)
        if value is None:
            continue
        if dest == "config_folder":
            folder = Path(value).expanduser()
            if not folder.is_dir():
                raise SystemExit(f"Error: config folder not found: {folder}")
            value = folder.resolve()
        env[variable] = str(value)
    return env


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    if args.version:
        from chatblocks.version import VERSION
        print(f"chatblocks-server version {VERSION}")
        return

    if args.env_file:
        env_path = Path(args.env_file).expanduser()
        if not env_path.exists():
            raise SystemExit(f"Error: env file not found: {env_path}")
        load_dotenv(dotenv_path=str(env_path))
    else:
        load_dotenv(dotenv_path=str(Path.cwd() / ".env"))

    os.environ.update(settings_environment(args))

    import uvicorn

    host = args.host or os.getenv("CHATBLOCKS_HOST", "127.0.0.1")
    port = args.port or int(os.getenv("PORT", "8000"))
    print(f"Starting chatblocks server on {host}:{port}", file=sys.stderr)
    uvicorn.run(APP_IMPORT, host=host, port=port, reload=args.reload)


if __name__ == "__main__":
    main()
