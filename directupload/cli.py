"""Command line interface for directupload package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from .cli_console import ConsoleObserver, render_configuration_summary
from .models import SelectedFile, UploadConfig
from .orchestrator import UploadOrchestrator


DEFAULT_TIMEOUT = 60.0


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        env_level = os.getenv("LOG_LEVEL")
        level = getattr(logging, (log_level or env_level or "INFO").upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _build_config(
    api_url: Optional[str],
    storage_url: Optional[str],
    timeout: Optional[float],
) -> UploadConfig:
    api_url = api_url or os.getenv("DIRECT_UPLOAD_API_URL")
    if not api_url:
        raise CLIError("no API URL given (--api-url or DIRECT_UPLOAD_API_URL)")

    storage_url = storage_url or os.getenv("DIRECT_UPLOAD_STORAGE_URL")
    if not storage_url:
        raise CLIError("no storage URL given (--storage-url or DIRECT_UPLOAD_STORAGE_URL)")

    if timeout is None:
        env_timeout = os.getenv("DIRECT_UPLOAD_TIMEOUT")
        try:
            timeout = float(env_timeout) if env_timeout else DEFAULT_TIMEOUT
        except ValueError:
            raise CLIError(f"DIRECT_UPLOAD_TIMEOUT is not a number: {env_timeout}") from None
    if timeout <= 0:
        raise CLIError(f"timeout must be positive: {timeout}")

    return UploadConfig(api_url=api_url, storage_url=storage_url, timeout=timeout)


async def _run_upload(file: SelectedFile, config: UploadConfig) -> int:
    async with UploadOrchestrator(config) as orchestrator:
        ConsoleObserver().attach(orchestrator)
        attempt = await orchestrator.select(file)
    return 0 if attempt.succeeded else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="direct-up",
        description="Upload a file straight to object storage with a server-signed POST policy.",
    )
    parser.add_argument("source", nargs="?", type=Path, help="File to upload")
    parser.add_argument(
        "--api-url",
        default=None,
        help="Application server URL (default from DIRECT_UPLOAD_API_URL)",
    )
    parser.add_argument(
        "--storage-url",
        default=None,
        help="Bucket upload URL (default from DIRECT_UPLOAD_STORAGE_URL)",
    )
    parser.add_argument(
        "--mime-type",
        default=None,
        help="MIME type to sign and upload with (default: guessed from the file name)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help=f"Request timeout in seconds (default from DIRECT_UPLOAD_TIMEOUT or {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="direct-up (from directupload)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.source is None:
        parser.print_help()
        return 0

    source = Path(args.source).expanduser()
    if not source.is_file():
        print(f"ERROR: source is not a file: {source}", file=sys.stderr)
        return 1

    try:
        config = _build_config(args.api_url, args.storage_url, args.timeout)
        file = SelectedFile.from_path(source, mime_type=args.mime_type)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as exc:
        print(f"ERROR: cannot read {source}: {exc}", file=sys.stderr)
        return 1

    if not args.silent:
        render_configuration_summary(
            {
                "Source": str(source),
                "MIME Type": file.mime_type,
                "API": config.api_url + config.signature_endpoint,
                "Storage": config.storage_url,
                "Timeout": f"{config.timeout:g}s",
                "Env File": str(used_env_file) if used_env_file else "-",
                "Logging": effective_log_mode,
            }
        )

    try:
        return asyncio.run(_run_upload(file, config))
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
