"""
Command-line interface for Liar's Mastermind.

Main menu, history viewer and the console side of the game loop.
"""

import argparse
import logging
from pathlib import Path

from rich.markup import escape
from rich.prompt import Prompt

from ..state.event_bus import EventBus
from ..state.schema import Outcome
from ..state.store import TextHistoryStore, filter_by_outcome
from ..systems.orchestrator import GameOrchestrator
from .config import (
    DEFAULT_DATA_DIR,
    Config,
    get_config_path,
    get_history_path,
    load_config,
    update_config,
)
from .renderer import THEME, SEPARATOR_LINE, attach, console, render_history, show_banner

logger = logging.getLogger(__name__)


MAIN_MENU = {
    "1": "Play Game",
    "2": "View Game History",
    "3": "Exit",
}

HISTORY_MENU = {
    "1": "View All History",
    "2": "View Won Games",
    "3": "View Lost Games",
    "4": "Back to Main Menu",
}


class ConsoleInput:
    """PlayerInput backed by the rich console."""

    def ask(self, prompt: str) -> str:
        return console.input(f"[{THEME['accent']}]{prompt}[/{THEME['accent']}]")


def _menu(title: str, options: dict[str, str]) -> str:
    console.print(f"\n{SEPARATOR_LINE}\n[bold]{title}[/bold]\n{SEPARATOR_LINE}")
    for key, label in options.items():
        console.print(f"{key}. {label}")
    console.print(SEPARATOR_LINE)
    return Prompt.ask("Enter your choice", choices=list(options), show_choices=False)


def view_history(store: TextHistoryStore) -> None:
    """History submenu: all, won, lost."""
    while True:
        choice = _menu("VIEW GAME HISTORY", HISTORY_MENU)
        if choice == "4":
            return

        history = store.load()
        if choice == "1":
            render_history(history, "All Game History")
        elif choice == "2":
            render_history(filter_by_outcome(history, Outcome.WON), "Won Games")
        elif choice == "3":
            render_history(filter_by_outcome(history, Outcome.LOST), "Lost Games")

        console.input(f"[{THEME['dim']}]Press Enter to continue...[/{THEME['dim']}]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Liar's Mastermind - code-breaking with an unreliable scorekeeper"
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help="Directory for config and history (default: ./data)",
    )
    parser.add_argument(
        "--history-file",
        type=Path,
        help="History log path (overrides config)",
    )
    parser.add_argument(
        "--sync",
        action="store_true",
        help="Score guesses on the main thread instead of a worker",
    )
    parser.add_argument(
        "--no-banner", "-q",
        action="store_true",
        help="Skip the title banner",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging",
    )
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Remember --history-file, --sync and --no-banner as defaults",
    )
    return parser


def remember_settings(args: argparse.Namespace) -> None:
    """Persist this run's flags into the user config."""
    updates: Config = {
        "background_scoring": not args.sync,
        "show_banner": not args.no_banner,
    }
    if args.history_file:
        updates["history_file"] = str(args.history_file)

    path = get_config_path(args.data_dir)
    if update_config(updates, args.data_dir):
        console.print(f"[{THEME['dim']}]Settings saved to {escape(str(path))}[/{THEME['dim']}]")
    else:
        console.print(f"[{THEME['warning']}]Could not save settings to {escape(str(path))}[/{THEME['warning']}]")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.save_settings:
        remember_settings(args)

    config = load_config(args.data_dir)
    history_path = args.history_file or get_history_path(config, args.data_dir)
    background = config.get("background_scoring", True) and not args.sync

    if config.get("show_banner", True) and not args.no_banner:
        show_banner()

    store = TextHistoryStore(history_path)
    bus = EventBus()
    attach(bus)
    logger.debug("History at %s, background scoring %s", history_path, background)

    try:
        with GameOrchestrator(
            ConsoleInput(),
            store,
            bus=bus,
            background_scoring=background,
        ) as game:
            while True:
                choice = _menu("MASTERMIND MAIN MENU", MAIN_MENU)
                if choice == "1":
                    game.run()
                elif choice == "2":
                    view_history(store)
                else:
                    break
    except (KeyboardInterrupt, EOFError):
        console.print()

    console.print(f"\n{SEPARATOR_LINE}\nExiting Mastermind. Goodbye!\n{SEPARATOR_LINE}")


if __name__ == "__main__":
    main()
