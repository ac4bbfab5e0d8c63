import pytest

from apps.matches.conf import Outcome, Side
from apps.matches.exceptions import (
    IncompleteConfirmationError,
    InvalidSelectionError,
    WorkflowStateError,
)
from apps.matches.schemas import ImageBlob
from apps.matches.services.workflow import (
    ConfirmationWorkflow,
    Confirmed,
    Empty,
    Extracted,
    Previewing,
    guess_side,
)
from conftest import make_extracted

PNG = ImageBlob(content_type="image/png", data=b"\x89PNG\r\n\x1a\nfake")


class FakeExtractor:
    def __init__(self, extracted=None, exc=None):
        self.extracted = extracted
        self.exc = exc

    async def extract(self, image):
        if self.exc:
            raise self.exc
        return self.extracted


def test_happy_path_reaches_confirmed():
    workflow = ConfirmationWorkflow("u1")
    assert isinstance(workflow.state, Empty)

    assert isinstance(workflow.attach_image(PNG), Previewing)
    assert isinstance(workflow.apply_extraction(make_extracted()), Extracted)
    workflow.select_side(Side.TEAM1)
    workflow.select_opponent("u2")
    workflow.select_outcome(Outcome.WIN)
    payload = workflow.confirm()

    assert isinstance(workflow.state, Confirmed)
    assert payload.winner_id == "u1"
    assert payload.extracted.team1_stats.user_id == "u1"
    assert payload.extracted.team2_stats.user_id == "u2"
    assert payload.stats_for("u2").score == 1
    assert payload.outcome_for("u2") is Outcome.LOSS


def test_confirm_lists_missing_selections():
    workflow = ConfirmationWorkflow.from_extracted("u1", make_extracted())
    workflow.select_side("team2")

    with pytest.raises(IncompleteConfirmationError) as exc_info:
        workflow.confirm()

    assert exc_info.value.missing == ["opponent_id", "outcome"]
    assert isinstance(workflow.state, Extracted)


def test_cannot_pick_yourself_as_opponent():
    workflow = ConfirmationWorkflow.from_extracted("u1", make_extracted())

    with pytest.raises(InvalidSelectionError):
        workflow.select_opponent("u1")


@pytest.mark.parametrize("opponent_id", ["draw", " Draw "])
def test_draw_sentinel_cannot_be_an_opponent(opponent_id):
    workflow = ConfirmationWorkflow.from_extracted("u1", make_extracted())

    with pytest.raises(InvalidSelectionError) as exc_info:
        workflow.select_opponent(opponent_id)

    assert exc_info.value.status_code == 400
    assert exc_info.value.context == {"opponent_id": opponent_id.strip()}
    assert workflow.state.selections.opponent_id is None


@pytest.mark.parametrize("method, value", [("select_side", "team3"), ("select_outcome", "forfeit")])
def test_unknown_choices_are_rejected(method, value):
    workflow = ConfirmationWorkflow.from_extracted("u1", make_extracted())

    with pytest.raises(InvalidSelectionError):
        getattr(workflow, method)(value)


def test_selections_need_extracted_stats():
    workflow = ConfirmationWorkflow("u1")
    workflow.attach_image(PNG)

    with pytest.raises(WorkflowStateError):
        workflow.select_side("team1")


def test_cancel_discards_everything():
    workflow = ConfirmationWorkflow.from_extracted("u1", make_extracted())
    workflow.select_side("team1")

    assert isinstance(workflow.cancel(), Empty)
    with pytest.raises(WorkflowStateError):
        workflow.confirm()


def test_declared_outcome_wins_over_scores():
    workflow = ConfirmationWorkflow.from_extracted("u1", make_extracted(3, 1))
    workflow.select_side("team1")
    workflow.select_opponent("u2")
    workflow.select_outcome("loss")

    assert workflow.state.suggested_outcome is Outcome.WIN
    assert workflow.confirm().winner_id == "u2"


def test_guess_side_matches_club_name():
    extracted = make_extracted(team1_name="Arsenal", team2_name="Chelsea")

    assert guess_side(extracted, " chelsea ") is Side.TEAM2
    assert guess_side(extracted, "Spurs") is None
    assert guess_side(extracted, None) is None


async def test_failed_extraction_keeps_the_preview():
    from apps.matches.exceptions import ExtractionError

    workflow = ConfirmationWorkflow("u1")
    workflow.attach_image(PNG)

    with pytest.raises(ExtractionError):
        await workflow.extract(FakeExtractor(exc=ExtractionError(reason="timeout")))
    assert isinstance(workflow.state, Previewing)

    state = await workflow.extract(FakeExtractor(extracted=make_extracted()))
    assert state.image == PNG
