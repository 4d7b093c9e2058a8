"""Property-based and scenario tests for the fill executor state machine."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from hypothesis import given, settings, strategies as st

from cv_autofill.core.models import CVRecord, FieldMapping, FieldType, FileUploadMapping, FileUploadType, FillState
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.detection.uploads import FileUploadClassifier
from cv_autofill.fill.executor import FillExecutor, summary_message
from tests.fakes import FakeWritePort


def _executor(port: FakeWritePort) -> FillExecutor:
    return FillExecutor(port, FileUploadClassifier(ClassifierTables()), fill_delay=0)


def _mapping(ref: str, field_type: FieldType, value: str, confidence: float = 0.8) -> FieldMapping:
    return FieldMapping(ref=ref, field_type=field_type, confidence=confidence, value=value)


def _upload(ref: str = "up", purpose: FileUploadType = FileUploadType.CV_RESUME, **kwargs) -> FileUploadMapping:
    return FileUploadMapping(ref=ref, purpose=purpose, confidence=0.9, **kwargs)


def _cv() -> CVRecord:
    return CVRecord.from_bytes("jane-doe.pdf", "application/pdf", b"%PDF-1.4 test")


class TestFillExecutorProperties:
    """Properties of the per-field write/verify cycle."""

    @given(st.text(min_size=1, max_size=80).filter(lambda s: s.strip()))
    @settings(max_examples=50, deadline=None)
    def test_echoing_target_always_succeeds(self, value):
        """
        Property: Fill Round-Trip

        For any non-blank value and a target that stores writes verbatim, the
        field ends in Success and holds exactly the written value.
        """
        async def run_test():
            port = FakeWritePort(values={"f1": "old"})
            outcome = await _executor(port).fill_field(_mapping("f1", FieldType.FIRST_NAME, value))

            assert outcome.state == FillState.SUCCESS
            assert outcome.history == [
                FillState.PENDING, FillState.FILLING, FillState.VERIFYING, FillState.SUCCESS,
            ]
            assert port.values["f1"] == value
            assert port.feedback == [("f1", True)]

        asyncio.run(run_test())

    @given(
        st.text(min_size=2, max_size=40).filter(lambda s: s.strip()),
        st.text(max_size=20),
    )
    @settings(max_examples=50, deadline=None)
    def test_mismatch_restores_original_value(self, value, original):
        """
        Property: Rollback Restores Original

        When the target stores something other than what was written, the
        field is rolled back to exactly its pre-fill value.
        """
        async def run_test():
            port = FakeWritePort(values={"f1": original}, mangle={"f1": lambda v: v[:-1]})
            outcome = await _executor(port).fill_field(_mapping("f1", FieldType.EMAIL, value))

            assert outcome.state == FillState.ROLLED_BACK
            assert outcome.error == "Failed to fill email field"
            assert port.values["f1"] == original
            assert port.restores == [("f1", original)]
            assert port.feedback == [("f1", False)]

        asyncio.run(run_test())


class TestFillExecutor:
    """Scenario tests for FillExecutor."""

    @pytest.mark.asyncio
    async def test_blank_value_is_skipped_without_write(self):
        port = FakeWritePort()
        outcome = await _executor(port).fill_field(_mapping("f1", FieldType.PHONE, "   "))

        assert outcome.state == FillState.SKIPPED
        assert outcome.error is None
        assert port.writes == []

    @pytest.mark.asyncio
    async def test_field_no_longer_fillable_is_skipped(self):
        port = FakeWritePort(unfillable=["f1"])
        outcome = await _executor(port).fill_field(_mapping("f1", FieldType.PHONE, "555"))

        assert outcome.state == FillState.SKIPPED
        assert port.writes == []

    @pytest.mark.asyncio
    async def test_write_error_fails_only_that_field(self):
        port = FakeWritePort(fail_on=["phone"])
        mappings = [
            _mapping("first", FieldType.FIRST_NAME, "Jane"),
            _mapping("phone", FieldType.PHONE, "(555) 123-4567"),
            _mapping("email", FieldType.EMAIL, "jane@example.com"),
        ]

        result = await _executor(port).execute(mappings)

        assert result.filled == 2
        assert result.errors == ["Error filling phone: element detached"]
        assert [o.state for o in result.outcomes] == [FillState.SUCCESS, FillState.FAILED, FillState.SUCCESS]
        assert port.values["email"] == "jane@example.com"

    @pytest.mark.asyncio
    async def test_error_after_write_restores_original_value(self):
        port = FakeWritePort(values={"email": "old@example.com"}, stale_after_write=["email"])

        outcome = await _executor(port).fill_field(_mapping("email", FieldType.EMAIL, "jane@example.com"))

        assert outcome.state == FillState.FAILED
        assert outcome.error == "Error filling email: element is stale"
        assert port.writes == [("email", "jane@example.com")]
        assert port.restores == [("email", "old@example.com")]
        assert port.values["email"] == "old@example.com"
        assert port.feedback == [("email", False)]

    @pytest.mark.asyncio
    async def test_error_before_reading_original_does_not_restore(self):
        port = FakeWritePort()
        port.is_fillable = AsyncMock(side_effect=RuntimeError("frame detached"))

        outcome = await _executor(port).fill_field(_mapping("email", FieldType.EMAIL, "jane@example.com"))

        assert outcome.state == FillState.FAILED
        assert port.writes == []
        assert port.restores == []

    @pytest.mark.asyncio
    async def test_skipped_fields_are_not_errors(self):
        port = FakeWritePort()
        mappings = [
            _mapping("first", FieldType.FIRST_NAME, "Jane"),
            _mapping("last", FieldType.LAST_NAME, ""),
        ]

        result = await _executor(port).execute(mappings)

        assert result.filled == 1
        assert result.errors == []
        assert port.summaries == [("Successfully filled 1 fields", True)]

    @pytest.mark.asyncio
    async def test_fields_are_written_in_given_order(self):
        port = FakeWritePort()
        mappings = [
            _mapping("c", FieldType.EMAIL, "c@example.com"),
            _mapping("a", FieldType.FIRST_NAME, "A"),
            _mapping("b", FieldType.LAST_NAME, "B"),
        ]

        await _executor(port).execute(mappings)

        assert [ref for ref, _ in port.writes] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_cancellation_keeps_completed_writes(self):
        port = FakeWritePort()
        cancel = asyncio.Event()
        port.on_write = lambda ref, value: cancel.set()
        mappings = [
            _mapping("first", FieldType.FIRST_NAME, "Jane"),
            _mapping("last", FieldType.LAST_NAME, "Doe"),
        ]

        result = await _executor(port).execute(mappings, [_upload()], _cv(), cancel=cancel)

        assert result.cancelled is True
        assert result.filled == 1
        assert port.values == {"first": "Jane"}
        assert port.attached == []

    @pytest.mark.asyncio
    async def test_summary_failure_does_not_break_run(self):
        port = FakeWritePort()

        async def broken_summary(message, success):
            raise RuntimeError("page closed")

        port.show_summary = broken_summary
        result = await _executor(port).execute([_mapping("first", FieldType.FIRST_NAME, "Jane")])

        assert result.filled == 1

    @pytest.mark.asyncio
    async def test_feedback_failure_does_not_change_outcome(self):
        port = FakeWritePort()

        async def broken_feedback(ref, success):
            raise RuntimeError("style blocked")

        port.apply_feedback = broken_feedback
        outcome = await _executor(port).fill_field(_mapping("first", FieldType.FIRST_NAME, "Jane"))

        assert outcome.state == FillState.SUCCESS

    def test_summary_message(self):
        assert summary_message(3, 0) == "Successfully filled 3 fields"
        assert summary_message(2, 1) == "Filled 2 fields with 1 errors"


class TestFileUploads:
    """Scenario tests for CV uploads."""

    @pytest.mark.asyncio
    async def test_cv_upload_succeeds(self):
        port = FakeWritePort()
        outcome = await _executor(port).upload_file(_upload(accepted_types=(".pdf",)), _cv())

        assert outcome.state == FillState.SUCCESS
        assert outcome.history == [
            FillState.PENDING, FillState.UPLOADING, FillState.VERIFYING, FillState.SUCCESS,
        ]
        assert port.attached == [("up", "jane-doe.pdf", "application/pdf", b"%PDF-1.4 test")]

    @pytest.mark.asyncio
    async def test_incompatible_cv_is_never_attached(self):
        port = FakeWritePort()
        outcome = await _executor(port).upload_file(_upload(accepted_types=(".docx",)), _cv())

        assert outcome.state == FillState.FAILED
        assert "the field accepts .docx" in outcome.error
        assert port.attached == []

    @pytest.mark.asyncio
    async def test_unverified_upload_fails(self):
        port = FakeWritePort(file_names={"up": []})
        outcome = await _executor(port).upload_file(_upload(), _cv())

        assert outcome.state == FillState.FAILED
        assert outcome.error == "Failed to upload CV to cv_resume field"

    @pytest.mark.asyncio
    async def test_cover_letter_field_does_not_receive_cv(self):
        port = FakeWritePort()
        outcome = await _executor(port).upload_file(_upload(purpose=FileUploadType.COVER_LETTER_FILE), _cv())

        assert outcome.state == FillState.SKIPPED
        assert port.attached == []

    @pytest.mark.asyncio
    async def test_no_stored_cv_skips_upload(self):
        port = FakeWritePort()
        outcome = await _executor(port).upload_file(_upload(), None)

        assert outcome.state == FillState.SKIPPED

    @pytest.mark.asyncio
    async def test_upload_not_ready_is_skipped(self):
        port = FakeWritePort(upload_ready=False)
        outcome = await _executor(port).upload_file(_upload(), _cv())

        assert outcome.state == FillState.SKIPPED
        assert port.attached == []

    @pytest.mark.asyncio
    async def test_execute_counts_uploads_separately(self):
        port = FakeWritePort()
        result = await _executor(port).execute(
            [_mapping("first", FieldType.FIRST_NAME, "Jane")],
            [_upload()],
            _cv(),
        )

        assert result.filled == 1
        assert result.uploaded == 1
        assert result.to_dict()["outcomes"][1] == {
            "ref": "up", "target": "cv_resume", "state": "success", "error": None,
        }
