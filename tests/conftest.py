"""
Shared fixtures: an offscreen QApplication and small generated source PDFs.
"""
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz  # PyMuPDF
import pytest
from PyQt5.QtWidgets import QApplication

from pagestitch.core.annotations import AnnotationStore
from pagestitch.core.session import Session


def make_pdf(labels, width=200, height=300) -> bytes:
    """Build a PDF with one page per label, each page showing its label."""
    doc = fitz.open()
    for label in labels:
        page = doc.new_page(width=width, height=height)
        page.insert_text((20, 50), label, fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def fake_measure(text, font_size):
    """Deterministic text width: half the font size per character."""
    return len(text) * font_size * 0.5


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def pdf_a():
    return make_pdf(["ALPHA-1", "ALPHA-2"])


@pytest.fixture
def pdf_b():
    return make_pdf(["BRAVO-1"], width=300, height=200)


@pytest.fixture
def store():
    return AnnotationStore(text_measurer=fake_measure)


@pytest.fixture
def session(store):
    return Session(annotations=store)


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "session"
