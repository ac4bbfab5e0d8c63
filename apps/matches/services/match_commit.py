# ===============================================================================
# apps/matches/services/match_commit.py
# ===============================================================================
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

import structlog
from asgiref.sync import sync_to_async
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F

from apps.matches.exceptions import DuplicateMatchError, MatchCommitError, UnknownPlayerError
from apps.matches.models import Match, MatchSide
from apps.matches.services.events import dispatch_in_background, get_event_publisher
from apps.players.conf import SUMMED_SIDE_FIELDS
from apps.players.models import Player
from common.messaging.types import MatchCommittedEvent

if TYPE_CHECKING:  # pragma: no cover
    from apps.matches.services.events import EventPublisher
    from apps.matches.services.workflow import ConfirmedMatch

# -------------------------------------------------------------------------------
# Logger
# -------------------------------------------------------------------------------
log: Final = structlog.get_logger(__name__).bind(handler="MatchCommitService")

# MatchSide columns copied from the extracted stats row
SIDE_COLUMNS: Final[tuple[str, ...]] = (
    "name",
    "score",
    "possession",
    "shots",
    "shots_on_target",
    "fouls",
    "offsides",
    "corner_kicks",
    "free_kicks",
    "passes",
    "successful_passes",
    "crosses",
    "interceptions",
    "tackles",
    "saves",
    "pass_accuracy",
    "red_cards",
)


class MatchCommitService:
    """
    Stores a confirmed match and folds it into both players' aggregates.

    The match row, both side rows and both aggregate updates are written in a
    single transaction: either all of them land or none do. Derived effects are
    announced afterwards and never block or fail the commit.
    """

    # ---------------------------------------------------------------------------
    # Construction
    # ---------------------------------------------------------------------------
    def __init__(self, publisher: EventPublisher | None = None) -> None:
        self._publisher = publisher

    @property
    def publisher(self) -> EventPublisher:
        if self._publisher is None:
            self._publisher = get_event_publisher()
        return self._publisher

    # ---------------------------------------------------------------------------
    # Public async entry-point
    # ---------------------------------------------------------------------------
    async def commit_async(self, payload: ConfirmedMatch) -> Match:
        match = await sync_to_async(self.persist, thread_sensitive=True)(payload)

        event = MatchCommittedEvent(
            match_id=match.pk,
            creator_id=payload.creator_id,
            opponent_id=payload.opponent_id,
            winner_id=match.winner_id,
            fingerprint=match.fingerprint,
        )
        dispatch_in_background(self.publisher, event)
        return match

    # ---------------------------------------------------------------------------
    # Core sync commit
    # ---------------------------------------------------------------------------
    def persist(self, payload: ConfirmedMatch) -> Match:
        """Duplicate check plus the atomic write. Does not announce anything."""
        bound = log.bind(
            creator_id=payload.creator_id,
            opponent_id=payload.opponent_id,
            fingerprint=payload.fingerprint,
        )

        if self.is_duplicate(payload.fingerprint):
            bound.info("Duplicate upload rejected before write")
            raise DuplicateMatchError(fingerprint=payload.fingerprint)

        try:
            with transaction.atomic():
                self._lock_participants(payload)

                # a concurrent upload may have committed since the pre-check
                if self.is_duplicate(payload.fingerprint):
                    bound.info("Duplicate upload rejected inside transaction")
                    raise DuplicateMatchError(fingerprint=payload.fingerprint)

                match = self._create_match(payload)
                for player_id in (payload.creator_id, payload.opponent_id):
                    self._apply_aggregates(payload, player_id)

        except IntegrityError as exc:
            if self.is_duplicate(payload.fingerprint):
                bound.info("Duplicate upload lost the insert race")
                raise DuplicateMatchError(fingerprint=payload.fingerprint) from exc
            bound.exception("Integrity error while committing match")
            raise MatchCommitError from exc
        except DatabaseError as exc:
            bound.exception("Database error while committing match")
            raise MatchCommitError from exc

        bound.info(
            "Match committed",
            match_id=match.pk,
            winner_id=match.winner_id,
            outcome=payload.outcome.value,
        )
        return match

    # ---------------------------------------------------------------------------
    # Internal helpers (sync, inside the transaction)
    # ---------------------------------------------------------------------------
    @staticmethod
    def is_duplicate(fingerprint: str) -> bool:
        return Match.objects.filter(fingerprint=fingerprint).exists()

    @staticmethod
    def _lock_participants(payload: ConfirmedMatch) -> None:
        wanted = {payload.creator_id, payload.opponent_id}
        found = set(
            Player.objects.select_for_update()
            .filter(player_id__in=wanted)
            .order_by("player_id")
            .values_list("player_id", flat=True),
        )
        missing = sorted(wanted - found)
        if missing:
            raise UnknownPlayerError(missing=missing)

    @staticmethod
    def _create_match(payload: ConfirmedMatch) -> Match:
        extracted = payload.extracted
        match = Match.objects.create(
            created_by_id=payload.creator_id,
            opponent_id=payload.opponent_id,
            winner_id=payload.winner_id,
            user_team_side=payload.user_team_side,
            team1_name=extracted.team1_name,
            team2_name=extracted.team2_name,
            played_at=payload.played_at,
            fingerprint=payload.fingerprint,
        )
        sides = []
        for player_id, side in (
            (payload.creator_id, payload.user_team_side),
            (payload.opponent_id, payload.opponent_side),
        ):
            row = extracted.side(side)
            sides.append(
                MatchSide(
                    match=match,
                    side=side,
                    player_id=player_id,
                    **{column: getattr(row, column) for column in SIDE_COLUMNS},
                ),
            )
        MatchSide.objects.bulk_create(sides)
        return match

    @staticmethod
    def aggregate_increments(payload: ConfirmedMatch, player_id: str) -> dict[str, int]:
        """Plain-number deltas *player_id*'s stat block receives from this match."""
        own = payload.stats_for(player_id)
        other_id = payload.opponent_id if player_id == payload.creator_id else payload.creator_id
        other = payload.stats_for(other_id)

        deltas: dict[str, int] = {payload.outcome_for(player_id).result_field: 1}
        deltas["goals_for"] = own.score
        deltas["goals_against"] = other.score
        for field in SUMMED_SIDE_FIELDS:
            deltas[field] = getattr(own, field)
        return deltas

    def _apply_aggregates(self, payload: ConfirmedMatch, player_id: str) -> None:
        deltas = self.aggregate_increments(payload, player_id)
        updates: dict[str, Any] = {field: F(field) + value for field, value in deltas.items() if value}
        updated = Player.objects.filter(pk=player_id).update(**updates)
        if updated != 1:
            raise UnknownPlayerError(missing=[player_id])
