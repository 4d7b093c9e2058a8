"""Field classifier: assigns a semantic field type and confidence to each candidate."""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from cv_autofill.core.models import CandidateElement, FieldMapping, FieldType, Profile
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)

STRATEGY_ATTRIBUTE = "attribute"
STRATEGY_KEYWORD = "keyword"
STRATEGY_CONTEXT = "context"
STRATEGY_POSITION = "position"
STRATEGY_FALLBACK = "fallback"


@dataclass(frozen=True)
class ScoredMatch:
    """One strategy's verdict for one candidate."""
    field_type: FieldType
    confidence: float
    strategy: str


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def resolve_value(field_type: FieldType, profile: Optional[Profile]) -> str:
    """Look up the profile value a field type is filled with."""
    if profile is None:
        return ""
    personal = profile.personal_info
    lookup: Dict[FieldType, Callable[[], str]] = {
        FieldType.FIRST_NAME: lambda: personal.first_name,
        FieldType.LAST_NAME: lambda: personal.last_name,
        FieldType.EMAIL: lambda: personal.email,
        FieldType.PHONE: lambda: personal.phone,
        FieldType.ADDRESS: lambda: personal.address.street,
        FieldType.CITY: lambda: personal.address.city,
        FieldType.STATE: lambda: personal.address.state,
        FieldType.POSTCODE: lambda: personal.address.post_code,
        FieldType.COVER_LETTER: lambda: profile.work_info.experience,
        FieldType.RESUME_TEXT: lambda: ", ".join(profile.work_info.skills),
    }
    return lookup[field_type]() or ""


class FieldClassifier:
    """
    Runs the scoring strategies in priority order for each candidate.

    The first strategy whose confidence reaches its threshold wins. Otherwise
    the highest-confidence result is kept, with the earlier strategy winning
    an exact tie. Within a strategy, the field type listed first in the
    tables wins an exact tie.
    """

    def __init__(
        self,
        tables: ClassifierTables,
        min_mapping_confidence: float = 0.3,
        min_autofill_confidence: float = 0.4,
    ):
        self.tables = tables
        self.min_mapping_confidence = min_mapping_confidence
        self.min_autofill_confidence = min_autofill_confidence
        self.logger = logger.bind(component="field_classifier")

    def score_attributes(self, candidate: CandidateElement) -> Optional[ScoredMatch]:
        """Length-weighted identifier substring match against each field type's patterns."""
        text = candidate.identifier_text.lower()
        if not text:
            return None

        best: Optional[ScoredMatch] = None
        for field_type, rule in self.tables.field_patterns.items():
            match_score = 0.0
            total_weight = 0.0
            for pattern in rule.patterns:
                if pattern in text:
                    match_score += (len(pattern) / 10) * rule.weight
                    total_weight += rule.weight
            if match_score <= 0:
                continue
            confidence = _clamp(min(self.tables.attribute_max_confidence,
                                    match_score / max(1.0, total_weight)))
            if best is None or confidence > best.confidence:
                best = ScoredMatch(field_type, confidence, STRATEGY_ATTRIBUTE)
        return best

    def score_keywords(self, candidate: CandidateElement) -> Optional[ScoredMatch]:
        """
        Pick the field type whose whole keywords best cover the identifiers.

        Compound or long keywords count double and mark the match as exact.
        The conflict term (``email``) strongly favours EMAIL over ADDRESS.
        Confidence is then derived from the chosen type alone.
        """
        text = candidate.identifier_text.lower()
        if not text:
            return None

        scoring = self.tables.keyword_scoring
        conflict = scoring.conflict_term in text
        best_type: Optional[FieldType] = None
        best_score = 0
        for field_type, keywords in self.tables.keyword_patterns.items():
            score = 0
            exact = False
            for keyword in keywords:
                if keyword not in text:
                    continue
                if "_" in keyword or " " in keyword or len(keyword) >= scoring.compound_min_length:
                    score += len(keyword) * 2
                    exact = True
                else:
                    score += len(keyword)
            if field_type == FieldType.EMAIL and conflict:
                score += scoring.email_score_bonus
                exact = True
            if field_type == FieldType.ADDRESS and conflict:
                score = max(0, score - scoring.address_score_penalty)
            if exact:
                score += scoring.exact_score_bonus
            if score > best_score:
                best_score = score
                best_type = field_type

        if best_type is None:
            return None
        return ScoredMatch(best_type, self._keyword_confidence(candidate, text, best_type), STRATEGY_KEYWORD)

    def _keyword_confidence(self, candidate: CandidateElement, text: str, field_type: FieldType) -> float:
        scoring = self.tables.keyword_scoring
        confidence = scoring.base_confidence
        if any(keyword in text for keyword in self.tables.keyword_exact_matches.get(field_type, [])):
            confidence += scoring.exact_boost
        if scoring.conflict_term in text:
            if field_type == FieldType.EMAIL:
                confidence += scoring.email_boost
            elif field_type == FieldType.ADDRESS:
                confidence -= scoring.address_penalty
        if len(candidate.identifiers) >= scoring.multi_source_min:
            confidence += scoring.multi_source_boost
        if any(term in text for term in scoring.generic_terms):
            confidence -= scoring.generic_penalty
        return _clamp(confidence)

    def score_context(self, candidate: CandidateElement) -> Optional[ScoredMatch]:
        """Count of contextual phrases found in ancestor and sibling text."""
        text = " ".join(candidate.context_clues).lower()
        if not text:
            return None

        best: Optional[ScoredMatch] = None
        for field_type, phrases in self.tables.context_phrases.items():
            matches = sum(1 for phrase in phrases if phrase in text)
            if not matches:
                continue
            confidence = _clamp(min(self.tables.context_max_confidence,
                                    matches * self.tables.context_phrase_score))
            if best is None or confidence > best.confidence:
                best = ScoredMatch(field_type, confidence, STRATEGY_CONTEXT)
        return best

    def score_position(self, candidate: CandidateElement) -> Optional[ScoredMatch]:
        """Low-confidence guess from the element's index within its form."""
        if candidate.position is None:
            return None
        for rule in self.tables.position_rules:
            if rule.index == candidate.position:
                return ScoredMatch(rule.field_type, _clamp(rule.confidence), STRATEGY_POSITION)
        return None

    def score_fallback(self, candidate: CandidateElement) -> Optional[ScoredMatch]:
        """Declared input type or element kind, for candidates nothing else mapped."""
        for rule in self.tables.fallback_rules:
            if rule.input_type and candidate.tag == "input" and candidate.input_type == rule.input_type:
                return ScoredMatch(rule.field_type, _clamp(rule.confidence), STRATEGY_FALLBACK)
            if rule.tag and candidate.tag == rule.tag:
                return ScoredMatch(rule.field_type, _clamp(rule.confidence), STRATEGY_FALLBACK)
        return None

    def best_match(self, candidate: CandidateElement) -> Optional[ScoredMatch]:
        strategies = (
            (self.score_attributes, self.tables.attribute_threshold),
            (self.score_keywords, self.tables.keyword_threshold),
            (self.score_context, self.tables.context_threshold),
            (self.score_position, self.tables.position_threshold),
        )
        best: Optional[ScoredMatch] = None
        for scorer, threshold in strategies:
            match = scorer(candidate)
            if match is None:
                continue
            if match.confidence >= threshold:
                return match
            if best is None or match.confidence > best.confidence:
                best = match
        return best

    def classify(self, candidate: CandidateElement, profile: Optional[Profile]) -> Optional[FieldMapping]:
        """Mapping for one candidate, without the fallback or retention filter."""
        match = self.best_match(candidate)
        if match is None:
            return None
        return self._to_mapping(candidate, match, profile)

    def classify_all(
        self,
        candidates: Iterable[CandidateElement],
        profile: Optional[Profile],
    ) -> List[FieldMapping]:
        """
        Classify every candidate and keep the confident ones.

        Args:
            candidates: Fillable candidates in document order
            profile: Profile values are resolved from; None resolves to empty strings

        Returns:
            Mappings above the retention threshold, highest confidence first
        """
        mappings: List[FieldMapping] = []
        for candidate in candidates:
            mapping = self.classify(candidate, profile)
            if mapping is None or mapping.confidence <= self.min_mapping_confidence:
                fallback = self.score_fallback(candidate)
                mapping = self._to_mapping(candidate, fallback, profile) if fallback else None
            if mapping is not None and mapping.confidence > self.min_mapping_confidence:
                mappings.append(mapping)

        mappings.sort(key=lambda m: m.confidence, reverse=True)
        self.logger.debug(
            "Fields classified",
            mapped=len(mappings),
            types=[m.field_type.value for m in mappings],
        )
        return mappings

    def writable(self, mappings: Iterable[FieldMapping]) -> List[FieldMapping]:
        """Mappings confident enough to be written."""
        return [m for m in mappings if m.confidence > self.min_autofill_confidence]

    @staticmethod
    def _to_mapping(candidate: CandidateElement, match: ScoredMatch, profile: Optional[Profile]) -> FieldMapping:
        return FieldMapping(
            ref=candidate.ref,
            field_type=match.field_type,
            confidence=match.confidence,
            value=resolve_value(match.field_type, profile),
            strategy=match.strategy,
        )
