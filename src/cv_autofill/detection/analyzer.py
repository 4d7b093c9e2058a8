"""Snapshot analysis: inventory, filter and classify without touching the page."""

from dataclasses import dataclass, field
from typing import List, Optional

from cv_autofill.config import Settings, settings as default_settings
from cv_autofill.core.models import CandidateElement, FieldMapping, FileUploadMapping, Profile
from cv_autofill.detection.classifier import FieldClassifier
from cv_autofill.detection.identifiers import build_candidate
from cv_autofill.detection.inventory import ElementInventory
from cv_autofill.detection.tables import ClassifierTables, load_tables
from cv_autofill.detection.uploads import FileUploadClassifier
from cv_autofill.dom.snapshot import DocumentSnapshot


@dataclass
class ScanResult:
    """Everything one scan produced; replaced wholesale by the next scan."""
    snapshot: DocumentSnapshot
    profile: Optional[Profile]
    candidates: List[CandidateElement] = field(default_factory=list)
    mappings: List[FieldMapping] = field(default_factory=list)
    uploads: List[FileUploadMapping] = field(default_factory=list)

    @property
    def fields_detected(self) -> int:
        return len(self.candidates)


class FormAnalyzer:
    """Holds the tables and classifiers shared by every scan of a target."""

    def __init__(self, tables: Optional[ClassifierTables] = None, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.tables = tables or load_tables(self.config.tables_path)
        self.inventory = ElementInventory(self.tables)
        self.classifier = FieldClassifier(
            self.tables,
            min_mapping_confidence=self.config.min_field_mapping_confidence,
            min_autofill_confidence=self.config.min_autofill_confidence,
        )
        self.upload_classifier = FileUploadClassifier(
            self.tables,
            min_upload_confidence=self.config.min_file_upload_confidence,
        )

    def analyze(self, snapshot: DocumentSnapshot, profile: Optional[Profile]) -> ScanResult:
        fillable = self.inventory.fillable_elements(snapshot)
        candidates = [build_candidate(node, snapshot, self.tables) for node in fillable]
        mappings = self.classifier.classify_all(candidates, profile)
        uploads = self.upload_classifier.classify_all(self.inventory.file_inputs(snapshot), snapshot)
        return ScanResult(
            snapshot=snapshot,
            profile=profile,
            candidates=candidates,
            mappings=mappings,
            uploads=uploads,
        )
