from __future__ import annotations

import argparse
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence

import yaml
from pydantic import ValidationError

from ankipix.commands import batch_generate_from_list, check_connection, generate_from_selection
from ankipix.common.logging_config import setup_logging
from ankipix.config_models import AnkiPixSettings
from ankipix.settings import DEFAULT_CONFIG_PATH, load_settings, save_settings, update_settings
from ankipix.workflow.presenter import ConsolePresenter

logger = logging.getLogger(__name__)


def _read_input(path: Optional[str]) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    input_file = Path(path)
    if not input_file.is_file():
        raise SystemExit(f"Input file does not exist: {input_file}")
    return input_file.read_text(encoding="utf-8")


def _load(config_path: Path, deck: Optional[str]) -> AnkiPixSettings:
    try:
        settings = load_settings(config_path)
        if deck:
            settings = update_settings(settings, anki={"deck_name": deck})
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        raise SystemExit(f"Invalid configuration in {config_path}:\n{e}")
    return settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ankipix",
        description="Create Anki flashcards illustrated with images from Pixabay/Bing",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to YAML config (defaults to ./{DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING). Use DEBUG to see every HTTP request.",
    )
    parser.add_argument("--deck", help="Override the target deck name for this run")

    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Generate cards from selected text (one card per line)")
    generate.add_argument("--input", help="File holding the selected text (defaults to stdin)")

    batch = sub.add_parser("batch-list", help="Generate cards from a bulleted list without prompting")
    batch.add_argument("--input", help="File holding the list (defaults to stdin)")

    sub.add_parser("test-connection", help="Check that AnkiConnect is reachable")

    show = sub.add_parser("show-config", help="Print the effective configuration")
    show.add_argument("--write", action="store_true", help="Also write it back to the config file")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    config_path = Path(args.config)
    settings = _load(config_path, args.deck)
    logger.info("Starting command", extra={"command": args.command, "config": str(config_path)})

    if args.command == "test-connection":
        if check_connection(settings):
            print(f"Connected to AnkiConnect at {settings.anki.connect_url}")
            return 0
        print(f"Cannot connect to AnkiConnect at {settings.anki.connect_url}")
        return 1

    if args.command == "show-config":
        print(yaml.safe_dump(settings.model_dump(mode="json"), sort_keys=False, allow_unicode=True))
        if args.write:
            print(f"Saved to: {save_settings(settings, config_path)}")
        return 0

    text = _read_input(args.input)
    if args.command == "generate":
        if args.input is None:
            # stdin holds the selection, so prompts must come from the terminal
            with _terminal_input() as read:
                result = generate_from_selection(text, settings, ConsolePresenter(input_func=read))
        else:
            result = generate_from_selection(text, settings, ConsolePresenter())
    else:
        result = batch_generate_from_list(text, settings, ConsolePresenter())

    if result is None:
        return 1
    return 0 if not result.failed else 2


@contextmanager
def _terminal_input() -> Iterator[Callable[[str], str]]:
    """Yield an input function reading answers from the controlling terminal."""
    try:
        tty = open("/dev/tty", "r", encoding="utf-8")
    except OSError:
        raise SystemExit("Interactive generation needs a terminal; pass the selection with --input instead")

    def read(question: str) -> str:
        print(question, end="", flush=True)
        line = tty.readline()
        if not line:
            raise EOFError
        return line.rstrip("\n")

    with tty:
        yield read


if __name__ == "__main__":
    sys.exit(main())
