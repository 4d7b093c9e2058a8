"""Tests for the field classifier."""

import pytest
from hypothesis import given, settings, strategies as st

from cv_autofill.config import Settings
from cv_autofill.core.models import Address, CandidateElement, FieldType, PersonalInfo, Profile, WorkInfo
from cv_autofill.detection.classifier import (
    STRATEGY_ATTRIBUTE,
    STRATEGY_CONTEXT,
    STRATEGY_FALLBACK,
    STRATEGY_KEYWORD,
    STRATEGY_POSITION,
    FieldClassifier,
    resolve_value,
)
from cv_autofill.detection.analyzer import FormAnalyzer
from cv_autofill.detection.identifiers import build_candidate
from cv_autofill.detection.tables import ClassifierTables, PositionRule
from cv_autofill.dom.snapshot import DocumentSnapshot


def _profile() -> Profile:
    return Profile(
        personal_info=PersonalInfo(
            first_name="Jane",
            last_name="Doe",
            email="jane@example.com",
            phone="(555) 123-4567",
            address=Address(street="1 Main St", city="Springfield", state="IL", post_code="62701"),
        ),
        work_info=WorkInfo(
            current_title="Engineer",
            experience="5 years of experience",
            skills=["Python", "SQL"],
        ),
    )


def _candidate(ref="f1", tag="input", input_type="text", identifiers=(), context_clues=(), position=None):
    return CandidateElement(
        ref=ref,
        tag=tag,
        input_type=input_type,
        identifiers=tuple(identifiers),
        context_clues=tuple(context_clues),
        position=position,
    )


@st.composite
def candidate_strategy(draw):
    """Generate arbitrary candidates, biased towards recognisable identifiers."""
    words = st.sampled_from([
        "email", "first_name", "surname", "phone", "tel", "zip", "city", "cv",
        "cover letter", "message", "address", "state", "random", "field",
    ])
    identifiers = draw(st.lists(st.one_of(words, st.text(max_size=20)), max_size=6))
    clues = draw(st.lists(st.one_of(
        st.sampled_from(["Personal Information", "Contact Information", "Location", "Skills"]),
        st.text(max_size=40),
    ), max_size=4))
    tag = draw(st.sampled_from(["input", "textarea", "select"]))
    input_type = draw(st.sampled_from(["text", "email", "tel", "url"])) if tag == "input" else tag
    return _candidate(
        tag=tag,
        input_type=input_type,
        identifiers=[i.lower() for i in identifiers],
        context_clues=clues,
        position=draw(st.one_of(st.none(), st.integers(min_value=0, max_value=8))),
    )


class TestFieldClassifier:
    """Test cases for FieldClassifier."""

    @pytest.fixture
    def classifier(self):
        return FieldClassifier(ClassifierTables())

    def test_user_email_name_maps_to_email_by_attributes(self, classifier):
        snapshot = DocumentSnapshot.from_html('<form><input type="text" name="user_email"></form>')
        node = snapshot.find_all(lambda n: n.tag == "input")[0]
        candidate = build_candidate(node, snapshot, classifier.tables)

        mapping = classifier.classify(candidate, _profile())

        assert mapping.field_type == FieldType.EMAIL
        assert mapping.confidence >= 0.5
        assert mapping.strategy == STRATEGY_ATTRIBUTE
        assert mapping.value == "jane@example.com"

    def test_attribute_score_is_capped(self, classifier):
        candidate = _candidate(identifiers=["first_name", "firstname", "first name"])

        match = classifier.score_attributes(candidate)

        assert match.field_type == FieldType.FIRST_NAME
        assert match.confidence == pytest.approx(0.9)

    def test_context_strategy_used_when_attributes_are_silent(self, classifier):
        candidate = _candidate(
            identifiers=["q7"],
            context_clues=["Contact Information", "How to reach you"],
        )

        match = classifier.best_match(candidate)

        assert match.field_type == FieldType.EMAIL
        assert match.strategy == STRATEGY_CONTEXT
        assert match.confidence == pytest.approx(0.6)

    def test_exact_tie_goes_to_earlier_table_entry(self, classifier):
        candidate = _candidate(context_clues=["Personal information"])

        match = classifier.best_match(candidate)

        # first and last name share the same phrases; first name is listed first
        assert match.field_type == FieldType.FIRST_NAME
        assert match.confidence == pytest.approx(0.3)

    def test_exact_tie_between_strategies_goes_to_earlier_strategy(self):
        tables = ClassifierTables(
            position_rules=[PositionRule(index=0, field_type=FieldType.LAST_NAME, confidence=0.3)],
            context_threshold=0.9,
            position_threshold=0.9,
        )
        classifier = FieldClassifier(tables)
        candidate = _candidate(context_clues=["personal information"], position=0)

        match = classifier.best_match(candidate)

        assert match.strategy == STRATEGY_CONTEXT
        assert match.field_type == FieldType.FIRST_NAME

    def test_position_strategy_is_last_resort(self, classifier):
        candidate = _candidate(identifiers=["q3"], position=2)

        match = classifier.best_match(candidate)

        assert match.field_type == FieldType.EMAIL
        assert match.strategy == STRATEGY_POSITION
        assert match.confidence == pytest.approx(0.5)

    def test_position_outside_rules_gives_nothing(self, classifier):
        assert classifier.best_match(_candidate(identifiers=["q9"], position=7)) is None

    def test_fallback_on_declared_type(self, classifier):
        candidate = _candidate(input_type="tel", identifiers=["q2"])

        mappings = classifier.classify_all([candidate], _profile())

        assert len(mappings) == 1
        assert mappings[0].field_type == FieldType.PHONE
        assert mappings[0].strategy == STRATEGY_FALLBACK
        assert mappings[0].confidence == pytest.approx(0.8)
        assert mappings[0].value == "(555) 123-4567"

    def test_textarea_fallback_is_dropped_at_default_threshold(self, classifier):
        candidate = _candidate(tag="textarea", input_type="textarea", identifiers=["q4"])

        assert classifier.classify_all([candidate], _profile()) == []

    def test_textarea_fallback_kept_when_threshold_lowered(self):
        classifier = FieldClassifier(ClassifierTables(), min_mapping_confidence=0.2)
        candidate = _candidate(tag="textarea", input_type="textarea", identifiers=["q4"])

        mappings = classifier.classify_all([candidate], _profile())

        assert [m.field_type for m in mappings] == [FieldType.COVER_LETTER]
        assert mappings[0].value == "5 years of experience"

    def test_classify_all_sorts_by_confidence(self, classifier):
        candidates = [
            _candidate(ref="phone", identifiers=["phone"]),
            _candidate(ref="first", identifiers=["first_name", "first name"]),
            _candidate(ref="email", identifiers=["user_email"]),
        ]

        mappings = classifier.classify_all(candidates, _profile())

        assert [m.ref for m in mappings] == ["first", "email", "phone"]
        confidences = [m.confidence for m in mappings]
        assert confidences == sorted(confidences, reverse=True)

    def test_writable_requires_confidence_above_autofill_threshold(self, classifier):
        candidates = [
            _candidate(ref="a", identifiers=["q"], position=0),
            _candidate(ref="b", identifiers=["q"], position=2),
        ]
        mappings = classifier.classify_all(candidates, _profile())

        assert {m.ref for m in mappings} == {"a", "b"}
        assert [m.ref for m in classifier.writable(mappings)] == ["b"]

    def test_mapping_without_profile_resolves_empty(self, classifier):
        mapping = classifier.classify(_candidate(identifiers=["user_email"]), None)

        assert mapping.field_type == FieldType.EMAIL
        assert mapping.value == ""

    def test_labelled_plain_fields_are_typed_by_keywords(self):
        html = """
        <form>
          <label for="e">Email</label><input type="email" id="e" name="email">
          <label for="c">City</label><input type="text" id="c" name="city">
          <label for="z">Zip</label><input type="text" id="z" name="zip">
        </form>
        """
        snapshot = DocumentSnapshot.from_html(html)
        analyzer = FormAnalyzer(config=Settings())

        result = analyzer.analyze(snapshot, _profile())

        by_name = {snapshot.by_ref(m.ref).get("name"): m for m in result.mappings}
        assert {name: m.field_type for name, m in by_name.items()} == {
            "email": FieldType.EMAIL,
            "city": FieldType.CITY,
            "zip": FieldType.POSTCODE,
        }
        assert all(m.strategy == STRATEGY_KEYWORD for m in by_name.values())
        written = {snapshot.by_ref(m.ref).get("name"): m.value for m in analyzer.classifier.writable(result.mappings)}
        assert written == {"email": "jane@example.com", "city": "Springfield", "zip": "62701"}

    def test_keyword_confidence_for_email_identifiers(self, classifier):
        match = classifier.score_keywords(_candidate(identifiers=["email", "e", "email"]))

        assert match.field_type == FieldType.EMAIL
        assert match.confidence == pytest.approx(1.0)

    def test_keyword_strategy_runs_after_attributes(self, classifier):
        # attributes alone score this below their threshold
        candidate = _candidate(identifiers=["city", "c", "city"], position=0)

        assert classifier.score_attributes(candidate).confidence < 0.5
        match = classifier.best_match(candidate)

        assert match.field_type == FieldType.CITY
        assert match.strategy == STRATEGY_KEYWORD
        assert match.confidence == pytest.approx(0.6)

    def test_generic_identifiers_lower_keyword_confidence(self, classifier):
        candidate = _candidate(identifiers=["city", "text-field", "form-input"])

        mappings = classifier.classify_all([candidate], _profile())

        assert mappings[0].field_type == FieldType.CITY
        assert mappings[0].confidence == pytest.approx(0.4)
        assert classifier.writable(mappings) == []

    def test_email_term_penalises_address_confidence(self):
        classifier = FieldClassifier(ClassifierTables(keyword_patterns={FieldType.ADDRESS: ["address"]}))

        match = classifier.score_keywords(_candidate(identifiers=["email address"]))

        assert match.field_type == FieldType.ADDRESS
        assert match.confidence == pytest.approx(0.0)

    def test_email_term_outweighs_address_keywords(self, classifier):
        match = classifier.score_keywords(_candidate(identifiers=["home_address_email"]))

        assert match.field_type == FieldType.EMAIL

    @given(candidate_strategy())
    @settings(max_examples=100, deadline=None)
    def test_confidence_always_within_bounds(self, candidate):
        classifier = FieldClassifier(ClassifierTables())

        for scorer in (
            classifier.score_attributes,
            classifier.score_keywords,
            classifier.score_context,
            classifier.score_position,
            classifier.score_fallback,
        ):
            match = scorer(candidate)
            if match is not None:
                assert 0.0 <= match.confidence <= 1.0

        for mapping in classifier.classify_all([candidate], _profile()):
            assert 0.3 < mapping.confidence <= 1.0

    @given(candidate_strategy())
    @settings(max_examples=50, deadline=None)
    def test_classification_is_deterministic(self, candidate):
        classifier = FieldClassifier(ClassifierTables())
        profile = _profile()

        assert classifier.classify_all([candidate], profile) == classifier.classify_all([candidate], profile)


class TestResolveValue:
    """Test cases for resolve_value."""

    def test_profile_lookups(self):
        profile = _profile()

        assert resolve_value(FieldType.FIRST_NAME, profile) == "Jane"
        assert resolve_value(FieldType.ADDRESS, profile) == "1 Main St"
        assert resolve_value(FieldType.POSTCODE, profile) == "62701"
        assert resolve_value(FieldType.RESUME_TEXT, profile) == "Python, SQL"
        assert resolve_value(FieldType.COVER_LETTER, profile) == "5 years of experience"

    def test_missing_profile(self):
        assert resolve_value(FieldType.EMAIL, None) == ""
