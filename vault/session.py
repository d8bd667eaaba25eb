"""Flashcard study session: card selection and the per-session state machine.

    SelectingMode --start--> InProgress(card_index, revealed) --grade last--> Complete
    Complete --restart--> SelectingMode

Session position lives only in the StudySession object; the grade ledger is
the only thing that outlives it.
"""

import random
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from vault.errors import SessionStateError, ValidationError
from vault.ledger import accuracy_of, due_items
from vault.models import Grade, GradeRecord, Item, SessionStat, grade_counts, to_iso, utc_now


class SessionPhase(str, Enum):
    SELECTING_MODE = "selecting_mode"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class StudyMode(str, Enum):
    ALL = "all"
    DUE = "due"
    IMAGES = "images"


def select_cards(
    mode: str,
    items: Sequence[Item],
    records: Iterable[GradeRecord] = (),
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[Item]:
    """Pick and shuffle the deck for a mode. IMAGES keeps items with at least one image asset."""
    try:
        mode = StudyMode(mode)
    except ValueError:
        raise ValidationError(f"Unknown study mode: {mode}")

    if mode is StudyMode.DUE:
        deck = due_items(items, records, now=now)
    elif mode is StudyMode.IMAGES:
        deck = [item for item in items if item.has_images()]
    else:
        deck = list(items)

    (rng or random).shuffle(deck)
    return deck


class StudySession:
    """
    One pass over a deck.

    Grading is allowed whether or not the current card has been revealed.
    Each grade advances to the next card and hides it again; grading the
    last card completes the session.
    """

    def __init__(
        self,
        coin_rewards: Optional[Dict[str, int]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.coin_rewards = coin_rewards or {}
        self.clock = clock
        self._reset()

    def _reset(self) -> None:
        self.phase = SessionPhase.SELECTING_MODE
        self.mode: Optional[str] = None
        self.cards: List[Item] = []
        self.card_index = 0
        self.revealed = False
        self.graded: List[GradeRecord] = []
        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None

    def _require(self, phase: SessionPhase) -> None:
        if self.phase is not phase:
            raise SessionStateError(
                f"Session is {self.phase.value}, expected {phase.value}"
            )

    @property
    def current_card(self) -> Optional[Item]:
        if self.phase is not SessionPhase.IN_PROGRESS:
            return None
        return self.cards[self.card_index]

    def start(self, mode: str, cards: Sequence[Item]) -> None:
        self._require(SessionPhase.SELECTING_MODE)
        if not cards:
            raise SessionStateError("No cards to study")
        self.mode = StudyMode(mode).value
        self.cards = list(cards)
        self.card_index = 0
        self.revealed = False
        self.started_at = self.clock()
        self.phase = SessionPhase.IN_PROGRESS

    def reveal(self) -> Item:
        self._require(SessionPhase.IN_PROGRESS)
        self.revealed = True
        return self.cards[self.card_index]

    def grade(self, value: str) -> GradeRecord:
        self._require(SessionPhase.IN_PROGRESS)
        try:
            value = Grade(value).value
        except ValueError:
            raise ValidationError(f"Invalid grade: {value}")

        now = self.clock()
        record = GradeRecord(
            item_id=self.cards[self.card_index].id,
            grade=value,
            timestamp=to_iso(now),
        )
        self.graded.append(record)

        if self.card_index == len(self.cards) - 1:
            self.phase = SessionPhase.COMPLETE
            self.ended_at = now
        else:
            self.card_index += 1
        self.revealed = False
        return record

    def restart(self) -> None:
        """Back to mode selection; allowed from any phase."""
        self._reset()

    def progress(self) -> Dict:
        total = len(self.cards)
        position = total if self.phase is SessionPhase.COMPLETE else self.card_index + 1
        return {
            'phase': self.phase.value,
            'cardIndex': self.card_index,
            'total': total,
            'revealed': self.revealed,
            'percent': round(100 * position / total) if total else 0,
        }

    def summary(self) -> SessionStat:
        """Session record for the ledger. Only available once complete."""
        self._require(SessionPhase.COMPLETE)
        counts = grade_counts(r.grade for r in self.graded)
        coins = sum(self.coin_rewards.get(r.grade, 0) for r in self.graded)
        duration = (self.ended_at - self.started_at).total_seconds()
        return SessionStat(
            mode=self.mode,
            total_cards=len(self.cards),
            again=counts['again'],
            good=counts['good'],
            easy=counts['easy'],
            accuracy=round(accuracy_of(counts['again'], counts['good'], counts['easy']), 4),
            duration_seconds=round(duration, 2),
            coins_earned=coins,
            timestamp=to_iso(self.ended_at),
        )
