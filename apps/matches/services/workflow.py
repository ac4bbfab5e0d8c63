# apps/matches/services/workflow.py
# ===============================================================================
"""
Client-side confirmation of an uploaded screenshot, modelled as a small state
machine:

    Empty ──attach_image──▶ Previewing ──apply_extraction──▶ Extracted ──confirm──▶ Confirmed
      ▲                                                        │ select_side
      └──────────────────────────── cancel ────────────────────┘ select_opponent / select_outcome

Nothing here touches the database. `confirm()` only produces an immutable
`ConfirmedMatch` that `MatchCommitService` persists.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Final, Self, TypeAlias

import structlog
from django.utils import timezone

from apps.core.conf import DRAW
from apps.matches.conf import Outcome, Side, outcome_from_scores, winner_for
from apps.matches.exceptions import (
    IncompleteConfirmationError,
    InvalidSelectionError,
    WorkflowStateError,
)
from apps.matches.services.fingerprint import fingerprint

if TYPE_CHECKING:
    from apps.matches.schemas import ExtractedMatch, ImageBlob, PlayerStatsRow
    from apps.matches.services.extraction import StatsExtractor

log: Final = structlog.get_logger(__name__).bind(component="ConfirmationWorkflow")


# ─────────────────────────────────────────────────────────────── payload
@dataclass(frozen=True, slots=True)
class ConfirmedMatch:
    """Everything the commit needs, with user ids stamped on both sides."""

    creator_id: str
    opponent_id: str
    user_team_side: Side
    outcome: Outcome
    extracted: ExtractedMatch
    fingerprint: str
    played_at: datetime

    @property
    def winner_id(self) -> str:
        return winner_for(self.outcome, self.creator_id, self.opponent_id)

    @property
    def opponent_side(self) -> Side:
        return self.user_team_side.other

    def stats_for(self, player_id: str) -> PlayerStatsRow:
        if player_id == self.creator_id:
            return self.extracted.side(self.user_team_side)
        if player_id == self.opponent_id:
            return self.extracted.side(self.opponent_side)
        msg = f"{player_id!r} is not a participant"
        raise ValueError(msg)

    def outcome_for(self, player_id: str) -> Outcome:
        return self.outcome if player_id == self.creator_id else self.outcome.inverse


# ─────────────────────────────────────────────────────────────── states
@dataclass(frozen=True, slots=True)
class Selections:
    side: Side | None = None
    opponent_id: str | None = None
    outcome: Outcome | None = None

    def missing(self) -> list[str]:
        names = ("side", "opponent_id", "outcome")
        return [name for name in names if getattr(self, name) is None]


@dataclass(frozen=True, slots=True)
class Empty:
    pass


@dataclass(frozen=True, slots=True)
class Previewing:
    image: ImageBlob


@dataclass(frozen=True, slots=True)
class Extracted:
    extracted: ExtractedMatch
    selections: Selections = field(default_factory=Selections)
    image: ImageBlob | None = None
    suggested_side: Side | None = None

    @property
    def suggested_outcome(self) -> Outcome | None:
        """What the scores say, for the chosen (or guessed) side. Only a hint."""
        side = self.selections.side or self.suggested_side
        if side is None:
            return None
        own = self.extracted.side(side).score
        other = self.extracted.side(side.other).score
        return outcome_from_scores(own, other)


@dataclass(frozen=True, slots=True)
class Confirmed:
    payload: ConfirmedMatch


WorkflowState: TypeAlias = Empty | Previewing | Extracted | Confirmed


def guess_side(extracted: ExtractedMatch, team_name: str | None) -> Side | None:
    """Match the player's usual club against the names on the screenshot."""
    if not team_name:
        return None
    wanted = team_name.strip().casefold()
    hits = [side for side in Side if extracted.team_name(side).strip().casefold() == wanted]
    return hits[0] if len(hits) == 1 else None


# ─────────────────────────────────────────────────────────────── machine
class ConfirmationWorkflow:
    """Drives one upload from screenshot to a confirmed, commit-ready payload."""

    def __init__(self, player_id: str, *, team_name: str | None = None) -> None:
        self.player_id = player_id
        self.team_name = team_name
        self.state: WorkflowState = Empty()

    @classmethod
    def from_extracted(cls, player_id: str, extracted: ExtractedMatch, *, team_name: str | None = None) -> Self:
        """Resume a workflow whose extraction already happened (e.g. in an earlier request)."""
        workflow = cls(player_id, team_name=team_name)
        workflow.state = Extracted(extracted=extracted, suggested_side=guess_side(extracted, team_name))
        return workflow

    # ── transitions ───────────────────────────────────────────────────
    def attach_image(self, image: ImageBlob) -> Previewing:
        if not isinstance(self.state, Empty | Previewing):
            raise WorkflowStateError("Cancel the current upload before attaching another image.")
        self.state = Previewing(image=image)
        return self.state

    def apply_extraction(self, extracted: ExtractedMatch) -> Extracted:
        if not isinstance(self.state, Previewing):
            raise WorkflowStateError("Attach an image before applying extracted stats.")
        self.state = Extracted(
            extracted=extracted,
            image=self.state.image,
            suggested_side=guess_side(extracted, self.team_name),
        )
        return self.state

    async def extract(self, extractor: StatsExtractor) -> Extracted:
        """Run *extractor* on the attached image. On failure the preview is kept for a retry."""
        if not isinstance(self.state, Previewing):
            raise WorkflowStateError("Attach an image before extracting stats.")
        extracted = await extractor.extract(self.state.image)
        return self.apply_extraction(extracted)

    def select_side(self, side: Side | str) -> Extracted:
        try:
            side = Side(side)
        except ValueError as exc:
            raise InvalidSelectionError("Pick team1 or team2.", side=str(side)) from exc
        return self._select(side=side)

    def select_opponent(self, opponent_id: str) -> Extracted:
        opponent_id = (opponent_id or "").strip()
        if not opponent_id:
            raise InvalidSelectionError("Pick an opponent.")
        if opponent_id == self.player_id:
            raise InvalidSelectionError("You cannot play against yourself.")
        if opponent_id.lower() == DRAW:
            # would be indistinguishable from a drawn result in Match.winner_id
            raise InvalidSelectionError("That player id is reserved.", opponent_id=opponent_id)
        return self._select(opponent_id=opponent_id)

    def select_outcome(self, outcome: Outcome | str) -> Extracted:
        try:
            outcome = Outcome(outcome)
        except ValueError as exc:
            raise InvalidSelectionError("Pick win, loss or draw.", outcome=str(outcome)) from exc
        return self._select(outcome=outcome)

    def confirm(self, *, played_at: datetime | None = None) -> ConfirmedMatch:
        state = self._require_extracted()
        missing = state.selections.missing()
        if missing:
            raise IncompleteConfirmationError(missing)

        side = state.selections.side
        opponent_id = state.selections.opponent_id
        outcome = state.selections.outcome

        suggested = state.suggested_outcome
        if suggested is not None and suggested != outcome:
            # the human is authoritative; just leave a trace
            log.warning(
                "Declared outcome disagrees with scores",
                player_id=self.player_id,
                declared=outcome.value,
                from_scores=suggested.value,
            )

        extracted = state.extracted
        stamped = extracted.model_copy(
            update={
                f"{side.value}_stats": extracted.side(side).model_copy(update={"user_id": self.player_id}),
                f"{side.other.value}_stats": extracted.side(side.other).model_copy(update={"user_id": opponent_id}),
            },
        )
        payload = ConfirmedMatch(
            creator_id=self.player_id,
            opponent_id=opponent_id,
            user_team_side=side,
            outcome=outcome,
            extracted=stamped,
            fingerprint=fingerprint(stamped, self.player_id, opponent_id),
            played_at=played_at or timezone.now(),
        )
        self.state = Confirmed(payload=payload)
        return payload

    def cancel(self) -> Empty:
        self.state = Empty()
        return self.state

    # ── helpers ───────────────────────────────────────────────────────
    def _require_extracted(self) -> Extracted:
        if not isinstance(self.state, Extracted):
            raise WorkflowStateError("There are no extracted stats to confirm.")
        return self.state

    def _select(self, **changes) -> Extracted:
        state = self._require_extracted()
        self.state = replace(state, selections=replace(state.selections, **changes))
        return self.state
