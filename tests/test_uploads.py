"""Tests for the file-upload classifier and CV compatibility checks."""

import pytest

from cv_autofill.core.models import CVRecord, FileUploadMapping, FileUploadType
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.detection.uploads import (
    INCOMPATIBLE_SIZE,
    INCOMPATIBLE_TYPE,
    FileUploadClassifier,
    format_size,
    parse_accept,
)
from cv_autofill.dom.snapshot import DocumentSnapshot
from tests.fakes import APPLICATION_FORM_HTML


def _cv(file_name="resume.pdf", mime_type="application/pdf", size=1024) -> CVRecord:
    return CVRecord.from_bytes(file_name, mime_type, b"x" * size)


def _first_file_input(snapshot):
    return snapshot.find_all(lambda n: n.tag == "input" and n.get("type") == "file")[0]


class TestFileUploadClassifier:
    """Test cases for FileUploadClassifier."""

    @pytest.fixture
    def classifier(self):
        return FileUploadClassifier(ClassifierTables())

    def test_resume_input_is_classified_as_cv(self, classifier):
        snapshot = DocumentSnapshot.from_html(APPLICATION_FORM_HTML)

        mapping = classifier.classify(_first_file_input(snapshot), snapshot)

        assert mapping.purpose == FileUploadType.CV_RESUME
        assert mapping.accepted_types == (".pdf", ".docx")
        assert mapping.confidence == pytest.approx(1.0)

    def test_cover_letter_input(self, classifier):
        html = '<label for="cl">Cover Letter</label><input type="file" id="cl" name="cover_letter">'
        snapshot = DocumentSnapshot.from_html(html)

        mapping = classifier.classify(_first_file_input(snapshot), snapshot)

        assert mapping.purpose == FileUploadType.COVER_LETTER_FILE

    def test_generic_upload_is_other_with_penalty(self, classifier):
        html = '<input type="file" name="file_upload">'
        snapshot = DocumentSnapshot.from_html(html)

        mapping = classifier.classify(_first_file_input(snapshot), snapshot)

        assert mapping.purpose == FileUploadType.OTHER
        assert mapping.confidence == pytest.approx(0.2)
        assert classifier.eligible([mapping]) == []

    def test_unrecognised_input_is_not_mapped(self, classifier):
        snapshot = DocumentSnapshot.from_html('<input type="file" name="q1">')

        assert classifier.classify(_first_file_input(snapshot), snapshot) is None

    def test_max_size_from_attribute(self, classifier):
        snapshot = DocumentSnapshot.from_html('<input type="file" name="cv" data-max-size="2097152">')

        assert classifier.extract_max_size(_first_file_input(snapshot)) == 2097152

    def test_max_size_from_nearby_text(self, classifier):
        snapshot = DocumentSnapshot.from_html('<div>Upload your CV (max 2MB)<input type="file" name="cv"></div>')

        assert classifier.extract_max_size(_first_file_input(snapshot)) == 2 * 1024 * 1024

    def test_no_max_size(self, classifier):
        snapshot = DocumentSnapshot.from_html('<div><input type="file" name="cv"></div>')

        assert classifier.extract_max_size(_first_file_input(snapshot)) is None

    def test_doc_rejected_by_pdf_docx_field(self, classifier):
        mapping = FileUploadMapping(
            ref="f1",
            purpose=FileUploadType.CV_RESUME,
            confidence=0.9,
            accepted_types=(".pdf", ".docx"),
        )
        cv = _cv("resume.doc", "application/msword")

        result = classifier.check_compatibility(mapping, cv)

        assert not result
        assert result.kind == INCOMPATIBLE_TYPE
        assert ".pdf" in result.reason
        assert ".docx" in result.reason
        assert "resume.doc" in result.reason

    def test_mime_type_accept_entry(self, classifier):
        mapping = FileUploadMapping(
            ref="f1",
            purpose=FileUploadType.CV_RESUME,
            confidence=0.9,
            accepted_types=("application/pdf",),
        )

        assert classifier.check_compatibility(mapping, _cv())
        assert not classifier.check_compatibility(mapping, _cv("resume.doc", "application/msword"))

    def test_oversized_cv_reason_names_both_sizes(self, classifier):
        mapping = FileUploadMapping(
            ref="f1",
            purpose=FileUploadType.CV_RESUME,
            confidence=0.9,
            max_size=1024 * 1024,
        )
        cv = _cv(size=3 * 1024 * 1024)

        result = classifier.check_compatibility(mapping, cv)

        assert not result
        assert result.kind == INCOMPATIBLE_SIZE
        assert "3.0 MB" in result.reason
        assert "1.0 MB" in result.reason

    def test_unconstrained_field_accepts_anything(self, classifier):
        mapping = FileUploadMapping(ref="f1", purpose=FileUploadType.OTHER, confidence=0.6)

        result = classifier.check_compatibility(mapping, _cv("notes.txt", "text/plain"))

        assert result.compatible
        assert result.reason == ""

    def test_upload_order_puts_cv_first(self, classifier):
        mappings = [
            FileUploadMapping(ref="other", purpose=FileUploadType.OTHER, confidence=0.95),
            FileUploadMapping(ref="cv-low", purpose=FileUploadType.CV_RESUME, confidence=0.6),
            FileUploadMapping(ref="portfolio", purpose=FileUploadType.PORTFOLIO, confidence=0.7),
            FileUploadMapping(ref="cv-high", purpose=FileUploadType.CV_RESUME, confidence=0.9),
        ]

        ordered = [m.ref for m in classifier.upload_order(mappings)]

        assert ordered == ["cv-high", "cv-low", "other", "portfolio"]

    def test_eligible_uses_inclusive_threshold(self, classifier):
        at_threshold = FileUploadMapping(ref="a", purpose=FileUploadType.OTHER, confidence=0.5)
        below = FileUploadMapping(ref="b", purpose=FileUploadType.OTHER, confidence=0.49)

        assert classifier.eligible([at_threshold, below]) == [at_threshold]


class TestUploadHelpers:
    """Test cases for accept parsing and size formatting."""

    def test_parse_accept(self):
        assert parse_accept(".PDF, .docx ,application/pdf,") == (".pdf", ".docx", "application/pdf")
        assert parse_accept("") == ()

    def test_format_size(self):
        assert format_size(512) == "512 bytes"
        assert format_size(2048) == "2.0 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"
