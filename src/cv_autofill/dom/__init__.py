"""Read-only element tree the detection layer works on."""

from cv_autofill.dom.snapshot import DocumentSnapshot, DomNode

__all__ = ["DocumentSnapshot", "DomNode"]
