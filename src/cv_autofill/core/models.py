"""Core data models for CV Autofill."""

import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class FieldType(str, Enum):
    """Semantic profile attribute a form field maps to."""
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    CITY = "city"
    STATE = "state"
    POSTCODE = "postCode"
    COVER_LETTER = "coverLetter"
    RESUME_TEXT = "resumeText"


class FileUploadType(str, Enum):
    """Purpose of a file-selection field."""
    CV_RESUME = "cv_resume"
    COVER_LETTER_FILE = "cover_letter_file"
    PORTFOLIO = "portfolio"
    OTHER = "other"


class FillState(str, Enum):
    """States of the per-item fill state machine."""
    PENDING = "pending"
    FILLING = "filling"
    UPLOADING = "uploading"
    VERIFYING = "verifying"
    SUCCESS = "success"
    ROLLED_BACK = "rolled_back"
    SKIPPED = "skipped"
    FAILED = "failed"


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Address(CamelModel):
    """Postal address; every key is always present."""
    street: str = Field("", description="Street line")
    city: str = Field("", description="City or town")
    state: str = Field("", description="State, province or region")
    post_code: str = Field("", description="Postal or ZIP code")
    country: str = Field("", description="Country")

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class PersonalInfo(CamelModel):
    """Personal information."""
    first_name: str = Field("", description="Given name")
    last_name: str = Field("", description="Family name")
    email: str = Field("", description="Email address")
    phone: str = Field("", description="Phone number")
    address: Address = Field(default_factory=Address, description="Postal address")

    @field_validator("first_name", "last_name", "email", "phone", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("address", mode="before")
    @classmethod
    def _default_address(cls, value: Any) -> Any:
        return Address() if value is None else value


class WorkInfo(CamelModel):
    """Work information."""
    current_title: str = Field("", description="Current or most recent job title")
    experience: str = Field("", description="Free-text experience summary")
    skills: List[str] = Field(default_factory=list, description="Skill list")
    linkedin_url: str = Field("", description="LinkedIn profile URL")
    portfolio_url: str = Field("", description="Portfolio website URL")

    @field_validator("current_title", "experience", "linkedin_url", "portfolio_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Preferences(CamelModel):
    """User preferences."""
    autofill_enabled: bool = Field(True, description="Whether autofill may run")
    last_updated: datetime = Field(default_factory=utc_now, description="Last profile update time")


class Profile(CamelModel):
    """Complete stored profile that field values are resolved from."""
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo, description="Personal information")
    work_info: WorkInfo = Field(default_factory=WorkInfo, description="Work information")
    preferences: Preferences = Field(default_factory=Preferences, description="Preferences")


class AddressFragment(CamelModel):
    """Partially known address."""
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    post_code: Optional[str] = None
    country: Optional[str] = None


class PersonalInfoFragment(CamelModel):
    """Partially known personal information."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[AddressFragment] = None


class WorkInfoFragment(CamelModel):
    """Partially known work information."""
    current_title: Optional[str] = None
    experience: Optional[str] = None
    skills: Optional[List[str]] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None


class ProfileFragment(CamelModel):
    """Profile-shaped data derived from a CV, input to the merge engine."""
    personal_info: Optional[PersonalInfoFragment] = None
    work_info: Optional[WorkInfoFragment] = None


class ExtractedPersonalInfo(CamelModel):
    """Personal details found in CV text."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[AddressFragment] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None


class WorkExperience(CamelModel):
    """One job found in CV text."""
    job_title: str = ""
    company: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    current: bool = False
    description: Optional[str] = None


class Education(CamelModel):
    """One education entry found in CV text."""
    institution: str = ""
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ExtractionConfidence(CamelModel):
    """Per-category confidence reported by the text extractor."""
    personal_info: float = Field(0.0, ge=0.0, le=1.0)
    work_experience: float = Field(0.0, ge=0.0, le=1.0)
    education: float = Field(0.0, ge=0.0, le=1.0)
    skills: float = Field(0.0, ge=0.0, le=1.0)


class ExtractedProfileData(CamelModel):
    """Structured output of CV text analysis."""
    personal_info: ExtractedPersonalInfo = Field(default_factory=ExtractedPersonalInfo)
    work_experience: List[WorkExperience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    confidence: ExtractionConfidence = Field(default_factory=ExtractionConfidence)


class CVRecord(CamelModel):
    """Stored CV: file bytes plus metadata and extracted text."""
    file_name: str = Field(..., description="Original file name")
    mime_type: str = Field(..., description="MIME type of the file")
    file_size: int = Field(..., ge=0, description="File size in bytes")
    upload_date: datetime = Field(default_factory=utc_now, description="When the CV was stored")
    extracted_text: str = Field("", description="Plain text extracted from the document")
    file_blob: str = Field("", description="Base64 encoded file bytes")
    extraction_metadata: Dict[str, Any] = Field(default_factory=dict, description="Extractor details")

    @classmethod
    def from_bytes(cls, file_name: str, mime_type: str, data: bytes, **kwargs: Any) -> "CVRecord":
        return cls(
            file_name=file_name,
            mime_type=mime_type,
            file_size=len(data),
            file_blob=base64.b64encode(data).decode("ascii"),
            **kwargs,
        )

    def content(self) -> bytes:
        """Decoded file bytes."""
        return base64.b64decode(self.file_blob) if self.file_blob else b""


class AutofillPayload(CamelModel):
    """Trigger command delivered to the automation target."""
    user_profile: Profile
    cv_data: Optional[CVRecord] = None
    timestamp: datetime = Field(default_factory=utc_now)


@dataclass(frozen=True)
class CandidateElement:
    """A discovered element plus the static signals read from it."""
    ref: str
    tag: str
    input_type: str
    identifiers: Tuple[str, ...] = ()
    label_text: str = ""
    nearby_text: str = ""
    context_clues: Tuple[str, ...] = ()
    position: Optional[int] = None

    @property
    def identifier_text(self) -> str:
        return " ".join(self.identifiers)


@dataclass(frozen=True)
class FieldMapping:
    """A classified field with its resolved value."""
    ref: str
    field_type: FieldType
    confidence: float
    value: str
    strategy: str = ""


@dataclass(frozen=True)
class FileUploadMapping:
    """A classified file-selection field."""
    ref: str
    purpose: FileUploadType
    confidence: float
    accepted_types: Tuple[str, ...] = ()
    max_size: Optional[int] = None


@dataclass
class FillOutcome:
    """Terminal state of one fill or upload attempt."""
    ref: str
    target: str
    state: FillState
    error: Optional[str] = None
    history: List[FillState] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ref": self.ref,
            "target": self.target,
            "state": self.state.value,
            "error": self.error,
        }


@dataclass
class FillRunResult:
    """Aggregate of one fill run."""
    success: bool = True
    filled: int = 0
    uploaded: int = 0
    fields_detected: int = 0
    errors: List[str] = field(default_factory=list)
    outcomes: List[FillOutcome] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "filled": self.filled,
            "uploaded": self.uploaded,
            "fieldsDetected": self.fields_detected,
            "errors": list(self.errors),
            "cancelled": self.cancelled,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }
