"""Rasterized PDF page tools: watermark eraser and annotations."""

from src.pdf.annotations import AnnotationSession, PageHistory, composite_page, export_annotated_pdf
from src.pdf.watermark import detect_watermark, remove_watermark, remove_watermark_from_all

__all__ = [
    "AnnotationSession",
    "PageHistory",
    "composite_page",
    "detect_watermark",
    "export_annotated_pdf",
    "remove_watermark",
    "remove_watermark_from_all",
]
