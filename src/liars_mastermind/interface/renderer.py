"""
Display and rendering helpers for the CLI.

Everything the game loop has to say arrives as an event; attach() wires
one handler per event type onto the bus.
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..state.event_bus import EventBus, EventType, GameEvent
from ..state.schema import Outcome, SessionHistoryRecord


# Shared console instance
console = Console()

# -----------------------------------------------------------------------------
# Theme: the scorekeeper is calm. That's the problem.
# -----------------------------------------------------------------------------

THEME = {
    "primary": "steel_blue",
    "secondary": "grey70",
    "warning": "dark_goldenrod",
    "danger": "dark_red",
    "success": "green3",
    "accent": "cyan",
    "dim": "dim",
}

SEPARATOR_LINE = "-" * 40

BANNER = """
  L I A R ' S   M A S T E R M I N D
  ---------------------------------
"""


def show_banner() -> None:
    console.print(Text(BANNER, style=THEME["primary"]))
    console.print(f"[{THEME['dim']}]The feedback is usually honest.[/{THEME['dim']}]\n")


def render_rules(event: GameEvent) -> None:
    d = event.data
    body = (
        f"1. The computer picks a secret code of {d['code_length']} digits "
        f"({d['min_digit']}-{d['max_digit']}). Digits may repeat.\n"
        f"2. You have {d['max_rounds']} attempts to guess it.\n"
        "3. After each guess you are told:\n"
        "   - how many digits are in the correct position\n"
        "   - how many correct digits are in the wrong position\n\n"
        "[bold]SPECIAL MECHANICS[/bold]\n"
        "- Deception: up to 3 rounds per game may show false feedback.\n"
        "  Nothing marks them. Look for contradictions.\n"
        "- Truth Scan: once per game, pick a past round. If it lied, you\n"
        "  see the real feedback. Either way, the scan is spent.\n\n"
        "[bold]HOW TO PLAY[/bold]\n"
        f"- Enter a {d['code_length']}-digit guess.\n"
        f"- Enter '{d['scan_token']}' to use your Truth Scan.\n"
        f"- Enter '{d['summary_token']}' to view a summary of your guesses.\n\n"
        "[bold]EXAMPLE[/bold]\n"
        "Secret code: 1234   Your guess: 1356\n"
        "Feedback: Correct positions: 1, Misplaced: 1\n"
        "(1 is in the correct position, 3 is right digit, wrong position)"
    )
    console.print(Panel(body, title="MASTERMIND RULES", border_style=THEME["primary"]))


def render_session_started(event: GameEvent) -> None:
    console.print(f"\n[{THEME['accent']}]+++++++++++ NEW GAME +++++++++++[/{THEME['accent']}]")
    console.print(
        f"Try to guess the {event.data['code_length']}-digit code. "
        f"You have {event.data['max_rounds']} attempts."
    )


def render_round_started(event: GameEvent) -> None:
    console.print(
        f"\n[{THEME['primary']}]--- Round {event.data['round_number']} "
        f"of {event.data['max_rounds']} ---[/{THEME['primary']}]"
    )


def render_round_finalized(event: GameEvent) -> None:
    console.print(f"Feedback: [bold]{event.data['displayed']}[/bold]")


def render_round_failed(event: GameEvent) -> None:
    console.print(
        f"[{THEME['danger']}]{event.data['error']}[/{THEME['danger']}] "
        f"[{THEME['dim']}]Round not counted, try again.[/{THEME['dim']}]"
    )


def render_input_rejected(event: GameEvent) -> None:
    console.print(f"[{THEME['warning']}]{escape(event.data['message'])}[/{THEME['warning']}]")
    hint = event.data.get("hint")
    if hint:
        console.print(f"[{THEME['dim']}]{hint}[/{THEME['dim']}]")


def render_truth_scan(event: GameEvent) -> None:
    style = THEME["accent"] if event.data.get("consumed") else THEME["warning"]
    console.print(Panel(event.data["message"], title="TRUTH SCAN", border_style=style))


def render_guess_summary(event: GameEvent) -> None:
    lines = event.data["lines"]
    if not lines:
        console.print(f"[{THEME['dim']}]No guesses made yet.[/{THEME['dim']}]")
        return
    console.print(Panel("\n".join(lines), title="Guess Summary", border_style=THEME["secondary"]))


def render_session_ended(event: GameEvent) -> None:
    console.print(f"\n[{THEME['primary']}]=========== GAME OVER ============[/{THEME['primary']}]")
    if event.data["outcome"] == Outcome.WON.value:
        console.print(
            f"[{THEME['success']}]Congratulations! You won in "
            f"{event.data['rounds_played']} rounds![/{THEME['success']}]"
        )
    else:
        console.print(
            f"[{THEME['danger']}]Game Over! The secret code was: "
            f"{event.data['secret']}[/{THEME['danger']}]"
        )


def render_history_saved(event: GameEvent) -> None:
    console.print(f"[{THEME['dim']}]Game history saved.[/{THEME['dim']}]")


def render_history_save_failed(event: GameEvent) -> None:
    console.print(
        f"[{THEME['warning']}]Could not save game history. "
        f"This game will not appear in the log.[/{THEME['warning']}]"
    )


HANDLERS = {
    EventType.RULES_REQUESTED: render_rules,
    EventType.SESSION_STARTED: render_session_started,
    EventType.ROUND_STARTED: render_round_started,
    EventType.ROUND_FINALIZED: render_round_finalized,
    EventType.ROUND_FAILED: render_round_failed,
    EventType.INPUT_REJECTED: render_input_rejected,
    EventType.TRUTH_SCAN: render_truth_scan,
    EventType.GUESS_SUMMARY: render_guess_summary,
    EventType.SESSION_ENDED: render_session_ended,
    EventType.HISTORY_SAVED: render_history_saved,
    EventType.HISTORY_SAVE_FAILED: render_history_save_failed,
}


def attach(bus: EventBus) -> None:
    """Subscribe every renderer to its event."""
    for event_type, handler in HANDLERS.items():
        bus.on(event_type, handler)


def render_history(records: list[SessionHistoryRecord], title: str) -> None:
    """Table overview followed by each record's full block."""
    if not records:
        console.print(f"[{THEME['dim']}]No matching game history found.[/{THEME['dim']}]")
        return

    table = Table(title=title, border_style=THEME["secondary"])
    table.add_column("#", justify="right")
    table.add_column("When")
    table.add_column("Rounds", justify="right")
    table.add_column("Scan")
    table.add_column("Outcome")
    for i, record in enumerate(records, start=1):
        outcome_style = THEME["success"] if record.outcome == Outcome.WON else THEME["danger"]
        table.add_row(
            str(i),
            record.timestamp.strftime("%Y-%m-%d %H:%M"),
            str(len(record.round_details)),
            "used" if record.truth_scan_info else "-",
            f"[{outcome_style}]{record.outcome.value}[/{outcome_style}]",
        )
    console.print(table)

    # Log text is shown verbatim, never parsed as markup
    for record in records:
        console.print(Panel(Text(record.describe()), border_style=THEME["dim"]))
    console.print(f"[{THEME['dim']}]End of history view.[/{THEME['dim']}]")
