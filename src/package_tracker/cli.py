# src/package_tracker/cli.py
from __future__ import annotations

import argparse
import mimetypes
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config.env import EnvError, get_app_env
from .config.logging_config import get_logger
from .io.paths import derive_store_paths
from .io.store import LocalStore
from .models import Package
from .pipelines.intake import IntakeBusyError, IntakeProcessor
from .rules.status import VIEWS, VIEW_CURRENT


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="package-tracker",
        description="Track parcels from pasted delivery notifications and screenshots.",
    )
    p.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Path to the JSON store. Default: $PACKAGE_TRACKER_HOME/store.json",
    )
    p.add_argument(
        "--replay-file",
        type=Path,
        default=None,
        help="JSON file of canned extraction results (offline, deterministic).",
    )
    p.add_argument(
        "--no-console",
        action="store_true",
        help="Disable console logging (file logging remains).",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: $LOG_LEVEL or INFO",
    )
    p.add_argument(
        "--strict-env",
        action="store_true",
        help="Require GEMINI_API_KEY to be present; otherwise exit 2.",
    )

    sub = p.add_subparsers(dest="command", required=True)

    add_text = sub.add_parser("add-text", help="Extract a package from notification text.")
    add_text.add_argument("text", nargs="?", default=None,
                          help="Message text. Reads --file or stdin when omitted.")
    add_text.add_argument("--file", type=Path, default=None,
                          help="Read the message text from a file.")

    add_image = sub.add_parser("add-image", help="Extract a package from a screenshot.")
    add_image.add_argument("path", type=Path, help="Image file (png/jpeg/webp...).")

    ls = sub.add_parser("list", help="Show tracked packages.")
    ls.add_argument("--view", choices=VIEWS, default=VIEW_CURRENT)

    toggle = sub.add_parser("toggle", help="Flip a package between picked up / ready for pickup.")
    toggle.add_argument("id")

    delete = sub.add_parser("delete", help="Remove a package.")
    delete.add_argument("id")
    delete.add_argument("--yes", action="store_true", help="Skip confirmation.")

    clear = sub.add_parser("clear", help="Delete all local data on this device.")
    clear.add_argument("--yes", action="store_true", help="Skip confirmation.")

    export = sub.add_parser("export", help="Write an .xlsx report.")
    export.add_argument("output", type=Path)

    sync = sub.add_parser("sync-mail", help="Pull notifications from an Outlook folder.")
    sync.add_argument("--folder", default="Packages")

    sub.add_parser("logout", help="Forget the stored Outlook token.")
    return p


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _format_package(pkg: Package) -> str:
    return (
        f"{pkg.id}  {pkg.carrier.value:<8}  {pkg.tracking_number:<24}  "
        f"{pkg.status.value:<16}  {pkg.sender}"
    )


def _read_text_arg(args: argparse.Namespace) -> str:
    if args.text is not None:
        return args.text
    if args.file is not None:
        return args.file.read_text(encoding="utf-8")
    return sys.stdin.read()


def _build_client(args: argparse.Namespace, env_cfg, logger):
    # Lazy imports to keep startup light
    if args.replay_file:
        from .api.client import ReplayExtractionClient

        logger.info("Replay mode enabled: %s", args.replay_file)
        return ReplayExtractionClient(args.replay_file)

    from .api.gemini import GeminiConfig, GeminiExtractionClient

    cfg = GeminiConfig(
        api_key=env_cfg.GEMINI_API_KEY,
        model=env_cfg.GEMINI_MODEL,
        base_url=env_cfg.GEMINI_BASE_URL,
    )
    logger.debug("Live extraction enabled (model=%s)", cfg.model)
    return GeminiExtractionClient(cfg)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    store_path, log_path = derive_store_paths(args.store)
    logger = get_logger(
        "package_tracker",
        level=args.log_level,
        console=not args.no_console,
        log_file=log_path,
    )
    logger.debug("Store: %s", store_path)

    # Load env (don't fail unless user asked for strict)
    try:
        env_cfg = get_app_env(None, strict=args.strict_env)
    except EnvError as e:
        logger.error("Environment error: %s", e)
        return 2

    needs_client = args.command in ("add-text", "add-image", "sync-mail")
    if needs_client and not args.replay_file and not env_cfg.GEMINI_API_KEY:
        logger.error("GEMINI_API_KEY is not set (use --replay-file for offline runs)")
        return 2

    if args.command == "add-image" and not args.path.is_file():
        print(f"error: image not found: {args.path}", file=sys.stderr)
        return 2

    try:
        client = _build_client(args, env_cfg, logger) if needs_client else None
    except ValueError as e:
        logger.error("Extraction client error: %s", e)
        return 2

    try:
        processor = IntakeProcessor(logger, store=LocalStore(store_path), client=client)
        return _dispatch(args, processor, env_cfg, logger)
    except IntakeBusyError as e:
        logger.error("%s", e)
        return 1
    except Exception as e:
        logger.exception("Command %s failed: %s", args.command, e)
        return 1


def _dispatch(args: argparse.Namespace, processor: IntakeProcessor, env_cfg, logger) -> int:
    cmd = args.command

    if cmd == "add-text":
        text = _read_text_arg(args)
        if not text.strip():
            print("error: no message text given", file=sys.stderr)
            return 2
        outcome = processor.submit_text(text)
        print(outcome.message)
        return 0 if outcome.accepted else 1

    if cmd == "add-image":
        mime, _ = mimetypes.guess_type(args.path.name)
        outcome = processor.submit_image(
            args.path.read_bytes(), mime or "image/png", args.path.name)
        print(outcome.message)
        return 0 if outcome.accepted else 1

    if cmd == "list":
        rows = processor.view(args.view)
        if not rows:
            print("No packages.")
        for pkg in rows:
            print(_format_package(pkg))
        return 0

    if cmd == "toggle":
        pkg = processor.toggle(args.id)
        if pkg is None:
            print(f"error: no package with id {args.id}", file=sys.stderr)
            return 1
        print(_format_package(pkg))
        return 0

    if cmd == "delete":
        if processor.get(args.id) is None:
            print(f"error: no package with id {args.id}", file=sys.stderr)
            return 1
        if not args.yes and not _confirm("Delete this package?"):
            print("Aborted.")
            return 0
        processor.delete(args.id)
        return 0

    if cmd == "clear":
        if not args.yes and not _confirm(
            "Are you sure? This deletes your history and signs you out on this device."
        ):
            print("Aborted.")
            return 0
        processor.clear_all()
        return 0

    if cmd == "export":
        from .io.export import export_workbook

        out = export_workbook(processor.packages, args.output)
        logger.info("Wrote report -> %s", out)
        return 0

    if cmd == "sync-mail":
        from .api.outlook import MailSyncError, OutlookClient

        try:
            report = processor.sync_mail(
                OutlookClient(env_cfg.OUTLOOK_ACCESS_TOKEN), args.folder)
        except MailSyncError as e:
            logger.error("Outlook sync failed: %s", e)
            return 1
        print(f"Synced {report.fetched} message(s), {report.accepted} package update(s).")
        return 0

    if cmd == "logout":
        processor.sign_out()
        print("Signed out of Outlook.")
        return 0

    raise ValueError(f"Unknown command: {cmd}")  # pragma: no cover


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
