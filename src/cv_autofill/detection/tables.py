"""Lookup tables that drive field discovery and classification.

The classifier is a pure function of a candidate and these tables. Defaults
are built in; a JSON file with the same shape (camelCase or snake_case keys)
can replace any subset of them.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from cv_autofill.core.errors import TablesConfigError
from cv_autofill.core.models import FieldType, FileUploadType
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class _TableModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldPatternRule(_TableModel):
    """Identifier substrings for one field type and the type's base weight."""
    patterns: List[str]
    weight: float = Field(1.0, gt=0)


class PositionRule(_TableModel):
    index: int = Field(..., ge=0)
    field_type: FieldType
    confidence: float = Field(..., ge=0, le=1)


class FallbackRule(_TableModel):
    """Matches on declared input type or on tag name."""
    field_type: FieldType
    confidence: float = Field(..., ge=0, le=1)
    input_type: Optional[str] = None
    tag: Optional[str] = None


class KeywordScoring(_TableModel):
    """
    Weights for the keyword strategy.

    Selection scores each field type by the lengths of its matched keywords,
    doubling compound or long keywords. Confidence starts from a base and is
    adjusted for exact keywords, email/address conflicts, the number of
    identifier sources and generic terms.
    """
    compound_min_length: int = 7
    conflict_term: str = "email"
    email_score_bonus: int = 20
    address_score_penalty: int = 15
    exact_score_bonus: int = 10

    base_confidence: float = 0.5
    exact_boost: float = 0.3
    email_boost: float = 0.4
    address_penalty: float = 0.5
    multi_source_min: int = 3
    multi_source_boost: float = 0.1
    generic_terms: List[str] = Field(default_factory=lambda: ["input", "field", "text", "data"])
    generic_penalty: float = 0.2


class UploadPurposeRule(_TableModel):
    keywords: List[str]
    weight: float = Field(1.0, gt=0)
    exact_keywords: List[str] = Field(default_factory=list)


DEFAULT_FIELD_PATTERNS: Dict[FieldType, FieldPatternRule] = {
    FieldType.FIRST_NAME: FieldPatternRule(patterns=[
        "firstname", "first_name", "fname", "given_name", "givenname",
        "first name", "name_first", "user_first_name", "applicant_first",
        "candidate_first", "personal_first", "contact_first",
    ], weight=1.0),
    FieldType.LAST_NAME: FieldPatternRule(patterns=[
        "lastname", "last_name", "lname", "surname", "family_name", "familyname",
        "last name", "name_last", "user_last_name", "applicant_last",
        "candidate_last", "personal_last", "contact_last",
    ], weight=1.0),
    FieldType.EMAIL: FieldPatternRule(patterns=[
        "email", "email_address", "emailaddress", "e_mail", "e-mail",
        "user_email", "contact_email", "mail", "applicant_email",
        "candidate_email", "personal_email", "work_email",
    ], weight=1.2),
    FieldType.PHONE: FieldPatternRule(patterns=[
        "phone", "telephone", "tel", "mobile", "cell", "phone_number",
        "phonenumber", "contact_phone", "user_phone", "applicant_phone",
        "candidate_phone", "personal_phone", "work_phone", "home_phone",
    ], weight=1.1),
    FieldType.ADDRESS: FieldPatternRule(patterns=[
        "address", "street", "address_line_1", "address1", "street_address",
        "user_address", "contact_address", "home_address", "personal_address",
        "mailing_address", "residential_address",
    ], weight=0.9),
    FieldType.CITY: FieldPatternRule(patterns=[
        "city", "town", "locality", "user_city", "address_city",
        "home_city", "residence_city",
    ], weight=0.8),
    FieldType.STATE: FieldPatternRule(patterns=[
        "state", "province", "region", "user_state", "address_state",
        "home_state", "residence_state",
    ], weight=0.8),
    FieldType.POSTCODE: FieldPatternRule(patterns=[
        "zip", "zipcode", "postal", "postcode", "postal_code",
        "user_zip", "address_zip", "home_zip",
    ], weight=0.8),
    FieldType.COVER_LETTER: FieldPatternRule(patterns=[
        "cover_letter", "coverletter", "cover letter", "message",
        "additional_info", "comments", "why_interested",
    ], weight=0.7),
    FieldType.RESUME_TEXT: FieldPatternRule(patterns=[
        "resume", "cv", "curriculum", "experience", "background",
        "qualifications", "skills",
    ], weight=0.7),
}

DEFAULT_KEYWORD_PATTERNS: Dict[FieldType, List[str]] = {
    FieldType.FIRST_NAME: [
        "firstname", "first_name", "fname", "given_name", "givenname",
        "first name", "name_first", "user_first_name",
    ],
    FieldType.LAST_NAME: [
        "lastname", "last_name", "lname", "surname", "family_name", "familyname",
        "last name", "name_last", "user_last_name",
    ],
    FieldType.EMAIL: [
        "email", "email_address", "emailaddress", "e_mail", "e-mail",
        "user_email", "contact_email", "mail",
    ],
    FieldType.PHONE: [
        "phone", "telephone", "tel", "mobile", "cell", "phone_number",
        "phonenumber", "contact_phone", "user_phone",
    ],
    FieldType.ADDRESS: [
        "address", "street", "address_line_1", "address1", "street_address",
        "user_address", "contact_address", "home_address",
    ],
    FieldType.CITY: ["city", "town", "locality", "user_city", "address_city"],
    FieldType.STATE: ["state", "province", "region", "user_state", "address_state"],
    FieldType.POSTCODE: [
        "zip", "zipcode", "postal", "postcode", "postal_code", "user_zip", "address_zip",
    ],
    FieldType.COVER_LETTER: [
        "cover_letter", "coverletter", "cover letter", "message",
        "additional_info", "comments", "why_interested",
    ],
    FieldType.RESUME_TEXT: [
        "resume", "cv", "curriculum", "experience", "background",
        "qualifications", "skills",
    ],
}

DEFAULT_KEYWORD_EXACT_MATCHES: Dict[FieldType, List[str]] = {
    FieldType.EMAIL: ["email", "email_address", "emailaddress"],
    FieldType.PHONE: ["phone", "tel", "telephone"],
    FieldType.FIRST_NAME: ["firstname", "first_name"],
    FieldType.LAST_NAME: ["lastname", "last_name"],
    FieldType.ADDRESS: ["street_address", "address_line"],
}

_NAME_PHRASES = ["personal information", "contact details", "applicant info", "your name"]
_CONTACT_PHRASES = ["contact information", "how to reach you", "communication"]
_LOCATION_PHRASES = ["address information", "location", "where you live"]

DEFAULT_CONTEXT_PHRASES: Dict[FieldType, List[str]] = {
    FieldType.FIRST_NAME: list(_NAME_PHRASES),
    FieldType.LAST_NAME: list(_NAME_PHRASES),
    FieldType.EMAIL: list(_CONTACT_PHRASES),
    FieldType.PHONE: list(_CONTACT_PHRASES),
    FieldType.ADDRESS: list(_LOCATION_PHRASES),
    FieldType.CITY: list(_LOCATION_PHRASES),
    FieldType.STATE: list(_LOCATION_PHRASES),
    FieldType.POSTCODE: list(_LOCATION_PHRASES),
    FieldType.COVER_LETTER: [
        "tell us about yourself", "why are you interested", "additional information", "message",
    ],
    FieldType.RESUME_TEXT: ["experience", "qualifications", "background", "skills"],
}

DEFAULT_POSITION_RULES: List[PositionRule] = [
    PositionRule(index=0, field_type=FieldType.FIRST_NAME, confidence=0.4),
    PositionRule(index=1, field_type=FieldType.LAST_NAME, confidence=0.4),
    PositionRule(index=2, field_type=FieldType.EMAIL, confidence=0.5),
    PositionRule(index=3, field_type=FieldType.PHONE, confidence=0.4),
]

DEFAULT_FALLBACK_RULES: List[FallbackRule] = [
    FallbackRule(input_type="email", field_type=FieldType.EMAIL, confidence=0.8),
    FallbackRule(input_type="tel", field_type=FieldType.PHONE, confidence=0.8),
    FallbackRule(tag="textarea", field_type=FieldType.COVER_LETTER, confidence=0.3),
]

DEFAULT_UPLOAD_PURPOSES: Dict[FileUploadType, UploadPurposeRule] = {
    FileUploadType.CV_RESUME: UploadPurposeRule(
        keywords=[
            "resume", "cv", "curriculum", "curriculum_vitae", "curriculum vitae",
            "resume_file", "cv_file", "resumefile", "cvfile", "upload_resume",
            "upload_cv", "attach_resume", "attach_cv", "your_resume", "your_cv",
            "resume_upload", "cv_upload", "resume attachment", "cv attachment",
            "upload resume", "upload cv", "upload your resume", "upload your cv",
            "resume upload", "cv upload", "resume file", "cv file",
            "resume document", "cv document", "resume pdf", "cv pdf",
            "attach resume", "attach cv", "attach your resume", "attach your cv",
        ],
        weight=1.5,
        exact_keywords=[
            "resume", "cv", "curriculum", "upload resume", "upload cv",
            "resume upload", "cv upload", "resume file", "cv file",
        ],
    ),
    FileUploadType.COVER_LETTER_FILE: UploadPurposeRule(
        keywords=[
            "cover_letter", "coverletter", "cover letter", "cover_letter_file",
            "coverletterfile", "upload_cover_letter", "attach_cover_letter",
            "cover_letter_upload", "cover letter upload", "cover letter attachment",
            "upload cover letter", "upload your cover letter", "cover letter file",
            "cover letter document", "attach cover letter", "attach your cover letter",
        ],
        weight=1.0,
        exact_keywords=[
            "cover_letter", "coverletter", "cover letter", "upload cover letter",
            "cover letter upload", "cover letter file",
        ],
    ),
    FileUploadType.PORTFOLIO: UploadPurposeRule(
        keywords=[
            "portfolio", "portfolio_file", "portfoliofile", "work_samples",
            "samples", "portfolio_upload", "upload_portfolio", "attach_portfolio",
            "portfolio attachment", "work portfolio", "upload portfolio",
            "upload your portfolio", "portfolio upload", "portfolio file",
            "work samples", "sample work", "attach portfolio",
        ],
        weight=1.0,
        exact_keywords=[
            "portfolio", "work_samples", "upload portfolio", "portfolio upload",
            "portfolio file", "work samples",
        ],
    ),
    FileUploadType.OTHER: UploadPurposeRule(
        keywords=[
            "document", "file", "attachment", "upload", "additional_documents",
            "supporting_documents", "other_documents", "upload document",
            "upload file", "upload attachment", "file upload", "document upload",
            "attachment upload", "upload additional documents",
            "upload supporting documents", "upload other documents",
        ],
        weight=0.8,
    ),
}

DEFAULT_EXTENSION_MIME_TYPES: Dict[str, str] = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class ClassifierTables(_TableModel):
    """Every heuristic table used by discovery and classification."""

    field_patterns: Dict[FieldType, FieldPatternRule] = Field(
        default_factory=lambda: dict(DEFAULT_FIELD_PATTERNS))
    attribute_max_confidence: float = 0.9

    keyword_patterns: Dict[FieldType, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_KEYWORD_PATTERNS.items()})
    keyword_exact_matches: Dict[FieldType, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_KEYWORD_EXACT_MATCHES.items()})
    keyword_scoring: KeywordScoring = Field(default_factory=KeywordScoring)

    context_phrases: Dict[FieldType, List[str]] = Field(
        default_factory=lambda: dict(DEFAULT_CONTEXT_PHRASES))
    context_phrase_score: float = 0.3
    context_max_confidence: float = 0.7
    context_ancestor_levels: int = 3
    context_ancestor_max_length: int = 200
    context_sibling_count: int = 2
    context_sibling_max_length: int = 100

    position_rules: List[PositionRule] = Field(default_factory=lambda: list(DEFAULT_POSITION_RULES))
    fallback_rules: List[FallbackRule] = Field(default_factory=lambda: list(DEFAULT_FALLBACK_RULES))

    attribute_threshold: float = 0.5
    keyword_threshold: float = 0.5
    context_threshold: float = 0.4
    position_threshold: float = 0.3

    # Discovery
    allowed_input_types: List[str] = Field(
        default_factory=lambda: ["text", "email", "tel", "url", "search"])
    form_attribute_keywords: List[str] = Field(default_factory=lambda: [
        "name", "email", "phone", "address", "city", "state", "zip", "postal",
        "first", "last", "contact", "user", "profile", "personal", "info",
        "field", "input", "form", "data",
    ])
    form_label_keywords: List[str] = Field(default_factory=lambda: [
        "name", "email", "phone", "address", "city", "state", "zip",
        "contact", "personal", "profile", "information",
    ])
    form_nearby_keywords: List[str] = Field(
        default_factory=lambda: ["name", "email", "phone", "address"])
    discovery_name_patterns: List[str] = Field(default_factory=lambda: [
        "name", "email", "phone", "address", "city", "state", "zip", "postal",
    ])
    discovery_id_patterns: List[str] = Field(
        default_factory=lambda: ["name", "email", "phone", "address"])
    discovery_class_patterns: List[str] = Field(default_factory=lambda: ["input", "field"])
    discovery_data_attributes: List[str] = Field(
        default_factory=lambda: ["data-field", "data-input"])

    # Uploads
    upload_purposes: Dict[FileUploadType, UploadPurposeRule] = Field(
        default_factory=lambda: dict(DEFAULT_UPLOAD_PURPOSES))
    upload_base_confidence: float = 0.4
    upload_phrases: List[str] = Field(
        default_factory=lambda: ["upload resume", "upload cv", "resume upload", "cv upload"])
    document_accept_types: List[str] = Field(default_factory=lambda: [
        ".pdf", ".doc", ".docx", "application/pdf", "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ])
    cv_accept_types: List[str] = Field(
        default_factory=lambda: [".pdf", ".doc", ".docx", "application/pdf"])
    cv_specific_terms: List[str] = Field(
        default_factory=lambda: ["resume", "cv", "curriculum", "curriculum vitae"])
    generic_upload_terms: List[str] = Field(
        default_factory=lambda: ["file", "upload", "attachment"])
    extension_mime_types: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_EXTENSION_MIME_TYPES))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ClassifierTables":
        """
        Load tables from a JSON file, falling back to defaults for absent keys.

        Raises:
            TablesConfigError: if the file cannot be read or does not validate
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            tables = cls.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error("Failed to load classifier tables", path=str(path), error=str(e))
            raise TablesConfigError(f"Invalid classifier tables at {path}: {e}") from e

        logger.info("Classifier tables loaded", path=str(path))
        return tables


def load_tables(path: Optional[Union[str, Path]] = None) -> ClassifierTables:
    """Tables from ``path`` if given, else the built-in defaults."""
    if path:
        return ClassifierTables.load(path)
    return ClassifierTables()
