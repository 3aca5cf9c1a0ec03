import asyncio
import io
from datetime import datetime, timezone

import pytest

from app.core.errors import (
    SubmissionInProgressError,
    UploadError,
    ValidationError,
    WriteError,
)
from app.schemas.achievements import Achievement, AchievementForm, AchievementInput
from app.services.achievement_board import (
    NO_RECORDS,
    AchievementBoard,
    BoardState,
    UploadedAsset,
    filter_achievements,
)
from app.services.achievement_repository import AchievementRepository
from app.services.asset_uploader import AssetUploader
from app.tests.fakes import BrokenBlobStore, DroppedStream, UnavailableDocumentStore


def record(title, student_name, description="", date="2024-01-01"):
    return Achievement(
        id=title,
        title=title,
        student_name=student_name,
        description=description,
        date=date,
        file_url="http://files/x",
        file_name="x.pdf",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def science_fair():
    return AchievementForm(title="Science Fair", student_name="Ravi", date="2024-03-01")


def cert():
    return UploadedAsset(filename="cert.pdf", stream=io.BytesIO(b"%PDF-1.4 certificate"))


# ─────────────────────────────────────────────
# FILTER
# ─────────────────────────────────────────────

@pytest.mark.parametrize("term", ["math", "ASHA", "", "olymp", "Math Olympiad"])
def test_filter_includes_case_insensitive_matches(term):
    records = [record("Math Olympiad", "Asha")]
    assert filter_achievements(records, term) == records


def test_filter_excludes_non_matches():
    assert filter_achievements([record("Math Olympiad", "Asha")], "chess") == []


def test_filter_matches_description_and_keeps_order():
    records = [
        record("Debate", "Lena", "regional chess club mention", date="2024-02-01"),
        record("Chess Cup", "Omar", date="2024-01-01"),
        record("Art", "Kai", date="2023-01-01"),
    ]
    assert [r.title for r in filter_achievements(records, "CHESS")] == ["Debate", "Chess Cup"]


def test_empty_match_yields_sentinel_row(board):
    assert board.rows() == [NO_RECORDS]

    board.records = [record("Math Olympiad", "Asha")]
    assert board.rows("chess") == [NO_RECORDS]
    assert board.rows("asha") == board.records


def test_search_term_drives_default_view_and_notifies(board):
    seen = []
    board.subscribe(lambda b: seen.append(b.search_term))
    board.records = [record("Math Olympiad", "Asha"), record("Chess Cup", "Omar")]

    board.set_search_term("omar")

    assert [r.title for r in board.filtered()] == ["Chess Cup"]
    assert seen == ["omar"]


# ─────────────────────────────────────────────
# FETCH
# ─────────────────────────────────────────────

@pytest.mark.anyio
async def test_mount_passes_through_loading(board):
    states = []
    board.subscribe(lambda b: states.append(b.state))

    await board.mount()

    assert states == [BoardState.loading, BoardState.idle]
    assert board.records == []
    assert board.rows() == [NO_RECORDS]


@pytest.mark.anyio
async def test_mount_failure_degrades_to_empty_list(document_store, uploader):
    board = AchievementBoard(AchievementRepository(UnavailableDocumentStore(document_store)), uploader)

    await board.mount()

    assert board.state == BoardState.idle
    assert board.records == []
    assert board.message == "Could not load achievements."


# ─────────────────────────────────────────────
# SUBMISSION
# ─────────────────────────────────────────────

@pytest.mark.anyio
async def test_submission_end_to_end(board, repository, blob_store):
    await repository.append(
        AchievementInput(
            title="Older",
            student_name="Mia",
            date="2023-09-09",
            file_url="http://files/old",
            file_name="old.png",
        )
    )
    await board.mount()

    result = await board.submit(science_fair(), cert())

    assert result.ok
    assert result.refreshed
    assert board.state == BoardState.idle
    assert board.records[0].id == result.record_id
    assert board.records[0].file_url == result.file_url
    assert board.records[0].file_name == "cert.pdf"
    assert [r.title for r in board.records] == ["Science Fair", "Older"]

    key = result.file_url.split("/api/v1/files/", 1)[1]
    assert key.startswith("achievements/cert.pdf-")
    assert blob_store.open(key).read_bytes() == b"%PDF-1.4 certificate"


@pytest.mark.anyio
async def test_submission_states_in_order(board):
    states = []
    board.subscribe(lambda b: states.append(b.state))

    await board.submit(science_fair(), cert())

    assert states == [BoardState.submitting, BoardState.idle]


@pytest.mark.anyio
async def test_upload_happens_before_append(blob_store, repository):
    calls = []

    class TracingUploader(AssetUploader):
        async def upload(self, file, destination_key, *, on_progress=None):
            calls.append("upload:start")
            url = await super().upload(file, destination_key, on_progress=on_progress)
            calls.append("upload:done")
            return url

    class TracingRepository(AchievementRepository):
        async def append(self, record):
            calls.append("append")
            return await super().append(record)

        async def list_all(self):
            calls.append("list_all")
            return await super().list_all()

    board = AchievementBoard(TracingRepository(repository.store), TracingUploader(blob_store))
    await board.submit(science_fair(), cert())

    assert calls == ["upload:start", "upload:done", "append", "list_all"]


@pytest.mark.anyio
async def test_failed_upload_writes_no_document(repository, tmp_path):
    await repository.append(
        AchievementInput(
            title="Math Olympiad",
            student_name="Asha",
            date="2023-11-02",
            file_url="http://files/olympiad",
            file_name="olympiad.png",
        )
    )
    board = AchievementBoard(repository, AssetUploader(BrokenBlobStore(tmp_path / "b", "http://files")))
    await board.mount()
    before = await repository.list_all()
    assert len(before) == 1

    result = await board.submit(science_fair(), cert())

    assert isinstance(result.error, UploadError)
    assert result.record_id is None
    assert await repository.list_all() == before
    assert board.records == before
    assert board.state == BoardState.idle
    assert board.message == "File upload failed. Please try again."


@pytest.mark.anyio
async def test_write_failure_leaves_orphan_blob_and_reports(document_store, uploader, blob_store):
    store = UnavailableDocumentStore(document_store, fail_writes=True, fail_reads=False)
    board = AchievementBoard(AchievementRepository(store), uploader)

    result = await board.submit(science_fair(), cert())

    assert isinstance(result.error, WriteError)
    assert result.file_url is not None
    key = result.file_url.split("/api/v1/files/", 1)[1]
    assert blob_store.open(key).exists()
    assert board.records == []
    assert board.state == BoardState.idle


@pytest.mark.anyio
async def test_refresh_failure_after_write_keeps_stale_list(document_store, uploader):
    store = UnavailableDocumentStore(document_store, fail_writes=False, fail_reads=True)
    board = AchievementBoard(AchievementRepository(store), uploader)

    result = await board.submit(science_fair(), cert())

    assert result.ok
    assert result.record_id is not None
    assert result.refreshed is False
    assert board.records == []
    assert board.message == "Could not load achievements."


@pytest.mark.anyio
@pytest.mark.parametrize(
    "form,asset,missing",
    [
        (AchievementForm(student_name="Ravi", date="2024-03-01"), cert(), ["title"]),
        (AchievementForm(title="T", date="2024-03-01"), cert(), ["studentName"]),
        (AchievementForm(title="T", student_name="Ravi"), cert(), ["date"]),
        (science_fair(), None, ["file"]),
    ],
)
async def test_incomplete_submission_never_uploads(tmp_path, repository, form, asset, missing):
    board = AchievementBoard(repository, AssetUploader(BrokenBlobStore(tmp_path / "b", "http://files")))
    states = []
    board.subscribe(lambda b: states.append(b.state))

    result = await board.submit(form, asset)

    assert isinstance(result.error, ValidationError)
    assert result.error.fields == missing
    assert board.message == "Please fill all fields"
    assert BoardState.submitting not in states
    assert await repository.list_all() == []


@pytest.mark.anyio
async def test_concurrent_submit_is_refused(board, repository):
    first, second = await asyncio.gather(
        board.submit(science_fair(), cert()),
        board.submit(science_fair().model_copy(update={"title": "Second Try"}), cert()),
    )

    assert first.ok
    assert isinstance(second.error, SubmissionInProgressError)
    assert second.record_id is None

    records = await repository.list_all()
    assert [r.title for r in records] == ["Science Fair"]
    assert board.state == BoardState.idle
    # the refusal is reported to its caller only
    assert board.message is None


@pytest.mark.anyio
async def test_submit_refused_while_another_is_in_flight(board):
    board.state = BoardState.submitting
    board.message = None

    result = await board.submit(science_fair(), cert())

    assert isinstance(result.error, SubmissionInProgressError)
    assert not board.can_submit
    assert board.state == BoardState.submitting
    assert board.message is None


@pytest.mark.anyio
async def test_stream_failure_mid_transfer_becomes_upload_error(board, repository, blob_store):
    result = await board.submit(
        science_fair(), UploadedAsset(filename="cert.pdf", stream=DroppedStream())
    )

    assert isinstance(result.error, UploadError)
    assert result.record_id is None
    assert board.message == "File upload failed. Please try again."
    assert board.state == BoardState.idle
    assert await repository.list_all() == []
    assert [p for p in blob_store.root.rglob("*") if p.is_file()] == []



@pytest.mark.anyio
async def test_refresh_is_skipped_while_submitting(board):
    board.state = BoardState.submitting
    assert await board.refresh() is False
    assert board.state == BoardState.submitting


def test_failing_listener_does_not_break_notification(board):
    seen = []

    def boom(_):
        raise RuntimeError("redraw failed")

    board.subscribe(boom)
    board.subscribe(lambda b: seen.append(b.search_term))
    board.set_search_term("x")

    assert seen == ["x"]
    board.unsubscribe(boom)
