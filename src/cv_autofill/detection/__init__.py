"""Element inventory, fillability filter and field/upload classifiers."""

from cv_autofill.detection.analyzer import FormAnalyzer, ScanResult
from cv_autofill.detection.classifier import FieldClassifier
from cv_autofill.detection.fillability import is_fillable
from cv_autofill.detection.inventory import ElementInventory
from cv_autofill.detection.tables import ClassifierTables, load_tables
from cv_autofill.detection.uploads import FileUploadClassifier

__all__ = [
    "FormAnalyzer", "ScanResult",
    "FieldClassifier", "FileUploadClassifier",
    "ElementInventory", "is_fillable",
    "ClassifierTables", "load_tables",
]
