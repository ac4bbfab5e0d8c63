# apps/matches/management/commands/submit_match.py
# ================================================================================
import asyncio
import mimetypes
from datetime import datetime
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.matches.conf import Outcome, Side
from apps.matches.schemas import ImageBlob
from apps.matches.services.events import wait_for_background_tasks
from apps.matches.services.extraction import StatsExtractor
from apps.matches.services.match_commit import MatchCommitService
from apps.matches.services.workflow import ConfirmationWorkflow
from apps.players.models import Player
from common.errors import ServiceError

EFFECTS_WAIT_S = 120.0


class Command(BaseCommand):
    """Runs a screenshot through extraction, confirmation and commit."""

    help = "Upload a match screenshot from the command line."

    def add_arguments(self, parser) -> None:
        parser.add_argument("image", type=Path, help="Path to the screenshot (png, jpeg or webp).")
        parser.add_argument("--player", required=True, help="Uploading player's id.")
        parser.add_argument("--opponent", required=True, help="Opponent's player id.")
        parser.add_argument("--side", choices=Side.values, help="Which side you played; guessed from your club if omitted.")
        parser.add_argument(
            "--outcome",
            choices=Outcome.values,
            help="Your result; taken from the extracted score if omitted.",
        )
        parser.add_argument("--played-at", type=datetime.fromisoformat, help="ISO timestamp; defaults to now.")
        parser.add_argument("--dry-run", action="store_true", help="Stop after extraction.")

    def handle(self, *args, **options):
        path: Path = options["image"]
        if not path.is_file():
            msg = f"No such file: {path}"
            raise CommandError(msg)
        try:
            asyncio.run(self.submit(path, options))
        except ServiceError as e:
            raise CommandError(e.detail) from e

    async def submit(self, path: Path, options) -> None:
        content_type = mimetypes.guess_type(path.name)[0] or "image/png"
        image = ImageBlob.from_bytes(path.read_bytes(), content_type)

        player = await Player.objects.filter(pk=options["player"]).afirst()
        if player is None:
            msg = f"Unknown player: {options['player']}"
            raise CommandError(msg)

        workflow = ConfirmationWorkflow(player.pk, team_name=player.team_name)
        workflow.attach_image(image)
        extractor = StatsExtractor()
        try:
            state = await workflow.extract(extractor)
        finally:
            await extractor.close()

        extracted = state.extracted
        self.stdout.write(
            f"{extracted.team1_name} {extracted.team1_stats.score} - "
            f"{extracted.team2_stats.score} {extracted.team2_name}",
        )
        if options["dry_run"]:
            self.stdout.write(extracted.model_dump_json(indent=2))
            return

        side = options["side"] or state.suggested_side
        if side is None:
            msg = "Could not tell which side you played; pass --side."
            raise CommandError(msg)
        workflow.select_side(side)
        workflow.select_opponent(options["opponent"])
        outcome = options["outcome"] or workflow.state.suggested_outcome
        workflow.select_outcome(outcome)

        played_at = options["played_at"]
        if played_at is not None and timezone.is_naive(played_at):
            played_at = timezone.make_aware(played_at)
        payload = workflow.confirm(played_at=played_at)

        match = await MatchCommitService().commit_async(payload)
        self.stdout.write(self.style.SUCCESS(f"✓ Match {match.pk} committed (fingerprint {payload.fingerprint})."))

        await wait_for_background_tasks(timeout=EFFECTS_WAIT_S)
        self.stdout.write("Derived effects dispatched.")
