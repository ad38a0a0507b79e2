from .pdf_exporter import EXPORT_FILENAME, EXPORT_SCALE, PDFExporter
from .pdf_reader import PDFDocumentReader

__all__ = ["PDFDocumentReader", "PDFExporter", "EXPORT_FILENAME", "EXPORT_SCALE"]
