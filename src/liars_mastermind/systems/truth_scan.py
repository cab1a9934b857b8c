"""
Truth scanner.

One scan per session. The scan is burned by ANY completed use, including
scanning a round that turned out to be honest. Only the two refusals
(already used, nothing to scan) leave it available, and neither touches
session state.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict

from ..errors import ValidationError
from ..state.schema import CodeSequence, Feedback, SessionState
from .feedback import compute


class ScanStatus(str, Enum):
    ALREADY_USED = "already_used"
    NO_ROUNDS = "no_rounds"
    REVEALED = "revealed"          # Target was deceptive; truth shown
    NOT_DECEPTIVE = "not_deceptive"


class ScanOutcome(BaseModel):
    """Result of a scan request."""
    model_config = ConfigDict(frozen=True)

    status: ScanStatus
    target_round: int | None = None
    initiated_in_round: int | None = None
    true_feedback: Feedback | None = None
    description: str | None = None  # History text, set when the scan was spent

    @property
    def consumed(self) -> bool:
        return self.status in (ScanStatus.REVEALED, ScanStatus.NOT_DECEPTIVE)

    def message(self) -> str:
        """Player-facing text."""
        if self.status == ScanStatus.ALREADY_USED:
            return "You have already used your truth scan this game!"
        if self.status == ScanStatus.NO_ROUNDS:
            return "No previous rounds to scan!"
        if self.status == ScanStatus.REVEALED:
            return f"Revealing true feedback for round {self.target_round}: {self.true_feedback}"
        return (
            f"Round {self.target_round} was not deceptive! "
            "Scan used, but no change."
        )


# Asked only once a scan is possible: receives the highest scannable round
TargetChooser = Callable[[int], int]


class TruthScanner:
    """Stateless; the used-flag lives on the SessionState it is handed."""

    def handle_request(
        self,
        state: SessionState,
        secret: CodeSequence,
        choose_target: TargetChooser,
    ) -> ScanOutcome:
        """
        Resolve a scan request.

        Args:
            state: Current session
            secret: The session's secret, used to recompute the truth
            choose_target: Called with the current round count; must return
                a round number in [1, round_count]

        Raises:
            ValidationError: if choose_target returns an out-of-range round
        """
        if state.truth_scan_used:
            return ScanOutcome(status=ScanStatus.ALREADY_USED)
        if not state.rounds:
            return ScanOutcome(status=ScanStatus.NO_ROUNDS)

        initiated_in = state.next_round_number
        target = choose_target(state.round_count)
        record = state.get_round(target)

        if record.is_deceptive:
            truth = compute(secret, record.guess)
            if truth != record.true_feedback:
                raise ValidationError(
                    f"Round {target} true feedback does not match the secret"
                )
            outcome = ScanOutcome(
                status=ScanStatus.REVEALED,
                target_round=target,
                initiated_in_round=initiated_in,
                true_feedback=truth,
                description=(
                    f"Used in Round {initiated_in}, targeting Round {target} "
                    "(Deceptive - Truth Revealed)"
                ),
            )
            state.revealed_round = target
        else:
            outcome = ScanOutcome(
                status=ScanStatus.NOT_DECEPTIVE,
                target_round=target,
                initiated_in_round=initiated_in,
                description=(
                    f"Used in Round {initiated_in}, targeting Round {target} "
                    "(Not Deceptive)"
                ),
            )

        # Burned regardless of what the scan found
        state.truth_scan_used = True
        state.truth_scan_info = outcome.description
        return outcome
