"""
PDF page annotation: shape types, per-page immutable undo/redo history owned by one session,
compositing onto rasterized pages (Pillow ImageDraw) and multi-page PDF export.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, ClassVar, Sequence, Union

from PIL import Image, ImageColor, ImageDraw, ImageFont

_log = logging.getLogger(__name__)

HIGHLIGHT_OPACITY = 0.3
ARROW_HEAD_FACTOR = 4
ARROW_HEAD_ANGLE = math.pi / 6

Point = tuple[float, float]


# --- Annotation shapes ---


@dataclass(frozen=True)
class PenStroke:
    tool: ClassVar[str] = "pen"
    points: tuple[Point, ...]
    color: str = "#000000"
    width: float = 3.0


@dataclass(frozen=True)
class HighlightStroke:
    tool: ClassVar[str] = "highlight"
    points: tuple[Point, ...]
    color: str = "#ffff00"
    width: float = 20.0


@dataclass(frozen=True)
class EraserStroke:
    tool: ClassVar[str] = "eraser"
    points: tuple[Point, ...]
    width: float = 20.0


@dataclass(frozen=True)
class TextAnnotation:
    tool: ClassVar[str] = "text"
    x: float
    y: float
    text: str
    color: str = "#000000"
    font_size: int = 16


@dataclass(frozen=True)
class RectAnnotation:
    tool: ClassVar[str] = "rect"
    x: float
    y: float
    width: float
    height: float
    color: str = "#ff0000"
    line_width: float = 2.0


@dataclass(frozen=True)
class CircleAnnotation:
    tool: ClassVar[str] = "circle"
    cx: float
    cy: float
    rx: float
    ry: float
    color: str = "#ff0000"
    line_width: float = 2.0


@dataclass(frozen=True)
class ArrowAnnotation:
    tool: ClassVar[str] = "arrow"
    start_x: float
    start_y: float
    end_x: float
    end_y: float
    color: str = "#ff0000"
    line_width: float = 2.0


@dataclass(frozen=True)
class LineAnnotation:
    tool: ClassVar[str] = "line"
    start_x: float
    start_y: float
    end_x: float
    end_y: float
    color: str = "#ff0000"
    line_width: float = 2.0


Annotation = Union[
    PenStroke,
    HighlightStroke,
    EraserStroke,
    TextAnnotation,
    RectAnnotation,
    CircleAnnotation,
    ArrowAnnotation,
    LineAnnotation,
]


# --- History ---


@dataclass(frozen=True)
class PageHistory:
    """
    Immutable snapshot of one page: current annotations plus undo/redo stacks of earlier states.
    Every operation returns a new snapshot; undo/redo on an empty stack return self.
    """

    annotations: tuple[Annotation, ...] = ()
    undo_stack: tuple[tuple[Annotation, ...], ...] = ()
    redo_stack: tuple[tuple[Annotation, ...], ...] = ()

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    def push(self, annotation: Annotation) -> PageHistory:
        return PageHistory(
            annotations=self.annotations + (annotation,),
            undo_stack=self.undo_stack + (self.annotations,),
            redo_stack=(),
        )

    def cleared(self) -> PageHistory:
        """Remove every annotation on the page; undoable."""
        if not self.annotations:
            return self
        return PageHistory(
            annotations=(),
            undo_stack=self.undo_stack + (self.annotations,),
            redo_stack=(),
        )

    def undo(self) -> PageHistory:
        if not self.undo_stack:
            return self
        return PageHistory(
            annotations=self.undo_stack[-1],
            undo_stack=self.undo_stack[:-1],
            redo_stack=self.redo_stack + (self.annotations,),
        )

    def redo(self) -> PageHistory:
        if not self.redo_stack:
            return self
        return PageHistory(
            annotations=self.redo_stack[-1],
            undo_stack=self.undo_stack + (self.annotations,),
            redo_stack=self.redo_stack[:-1],
        )


_EMPTY_HISTORY = PageHistory()


class AnnotationSession:
    """Owns the history of every page of one document. Page numbers are 1-indexed."""

    def __init__(self) -> None:
        self._pages: dict[int, PageHistory] = {}

    def history(self, page: int) -> PageHistory:
        return self._pages.get(_check_page(page), _EMPTY_HISTORY)

    def annotations(self, page: int) -> tuple[Annotation, ...]:
        return self.history(page).annotations

    def add(self, page: int, annotation: Annotation) -> PageHistory:
        return self._set(page, self.history(page).push(annotation))

    def undo(self, page: int) -> PageHistory:
        return self._set(page, self.history(page).undo())

    def redo(self, page: int) -> PageHistory:
        return self._set(page, self.history(page).redo())

    def clear_page(self, page: int) -> PageHistory:
        return self._set(page, self.history(page).cleared())

    def reset(self) -> None:
        """Drop every page's history (new document loaded)."""
        self._pages = {}

    def _set(self, page: int, snapshot: PageHistory) -> PageHistory:
        self._pages[page] = snapshot
        return snapshot


def _check_page(page: int) -> int:
    if page < 1:
        raise ValueError(f"page numbers start at 1, got {page}")
    return page


# --- Rendering ---


def _rgba(color: str, opacity: float = 1.0) -> tuple[int, int, int, int]:
    r, g, b, a = ImageColor.getcolor(color, "RGBA")
    return r, g, b, int(round(a * opacity))


def _px(width: float) -> int:
    return max(1, int(round(width)))


def _draw_path(draw: ImageDraw.ImageDraw, points: Sequence[Point], fill: tuple[int, ...], width: float) -> None:
    """Polyline with round caps and joins; a single point becomes a dot."""
    if not points:
        return
    w = _px(width)
    if len(points) > 1:
        draw.line([tuple(p) for p in points], fill=fill, width=w, joint="curve")
    r = w / 2
    for x, y in (points[0], points[-1]):
        draw.ellipse([x - r, y - r, x + r, y + r], fill=fill)


def _draw_shape(layer: Image.Image, annotation: Annotation) -> None:
    draw = ImageDraw.Draw(layer)
    if isinstance(annotation, PenStroke):
        _draw_path(draw, annotation.points, _rgba(annotation.color), annotation.width)
    elif isinstance(annotation, HighlightStroke):
        ink = Image.new("RGBA", layer.size, (0, 0, 0, 0))
        _draw_path(ImageDraw.Draw(ink), annotation.points, _rgba(annotation.color, HIGHLIGHT_OPACITY), annotation.width)
        layer.alpha_composite(ink)
    elif isinstance(annotation, EraserStroke):
        # Writing transparent pixels directly removes annotation ink only; the page is a separate layer.
        _draw_path(draw, annotation.points, (0, 0, 0, 0), annotation.width)
    elif isinstance(annotation, TextAnnotation):
        font = ImageFont.load_default(size=annotation.font_size)
        # Canvas text is positioned by its baseline.
        draw.text((annotation.x, annotation.y - annotation.font_size), annotation.text, fill=_rgba(annotation.color), font=font)
    elif isinstance(annotation, RectAnnotation):
        x0, x1 = sorted((annotation.x, annotation.x + annotation.width))
        y0, y1 = sorted((annotation.y, annotation.y + annotation.height))
        draw.rectangle([x0, y0, x1, y1], outline=_rgba(annotation.color), width=_px(annotation.line_width))
    elif isinstance(annotation, CircleAnnotation):
        rx, ry = abs(annotation.rx), abs(annotation.ry)
        draw.ellipse(
            [annotation.cx - rx, annotation.cy - ry, annotation.cx + rx, annotation.cy + ry],
            outline=_rgba(annotation.color),
            width=_px(annotation.line_width),
        )
    elif isinstance(annotation, ArrowAnnotation):
        fill = _rgba(annotation.color)
        start, end = (annotation.start_x, annotation.start_y), (annotation.end_x, annotation.end_y)
        draw.line([start, end], fill=fill, width=_px(annotation.line_width))
        draw.polygon(arrow_head(annotation), fill=fill)
    elif isinstance(annotation, LineAnnotation):
        draw.line(
            [(annotation.start_x, annotation.start_y), (annotation.end_x, annotation.end_y)],
            fill=_rgba(annotation.color),
            width=_px(annotation.line_width),
        )
    else:
        raise TypeError(f"unknown annotation type: {type(annotation).__name__}")


def arrow_head(arrow: ArrowAnnotation) -> list[Point]:
    """Triangle at the arrow's end: two barbs 4*line_width long at +/-30 degrees."""
    angle = math.atan2(arrow.end_y - arrow.start_y, arrow.end_x - arrow.start_x)
    head = arrow.line_width * ARROW_HEAD_FACTOR
    return [
        (arrow.end_x, arrow.end_y),
        (
            arrow.end_x - head * math.cos(angle - ARROW_HEAD_ANGLE),
            arrow.end_y - head * math.sin(angle - ARROW_HEAD_ANGLE),
        ),
        (
            arrow.end_x - head * math.cos(angle + ARROW_HEAD_ANGLE),
            arrow.end_y - head * math.sin(angle + ARROW_HEAD_ANGLE),
        ),
    ]


def render_annotation_layer(size: tuple[int, int], annotations: Sequence[Annotation]) -> Image.Image:
    """Draw annotations in order on a transparent RGBA layer."""
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    for annotation in annotations:
        _draw_shape(layer, annotation)
    return layer


def composite_page(page: Image.Image, annotations: Sequence[Annotation]) -> Image.Image:
    """Return a new RGBA image: the page with its annotation layer composited on top."""
    base = page.convert("RGBA")
    if not annotations:
        return base
    return Image.alpha_composite(base, render_annotation_layer(base.size, annotations))


def export_annotated_pdf(
    pages: Sequence[Image.Image],
    session: AnnotationSession,
    dest: str | Path,
    on_progress: Callable[[int, int], None] | None = None,
) -> Path:
    """Composite every page with its annotations (page i -> page number i + 1) and write one PDF."""
    if not pages:
        raise ValueError("no pages to export")
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    total = len(pages)
    composited: list[Image.Image] = []
    for i, page in enumerate(pages):
        composited.append(composite_page(page, session.annotations(i + 1)).convert("RGB"))
        if on_progress is not None:
            on_progress(i + 1, total)
    first, rest = composited[0], composited[1:]
    # 72 dpi: one PDF point per rendered pixel.
    first.save(dest, "PDF", save_all=True, append_images=rest, resolution=72.0)
    _log.info("Exported %d annotated page(s) to %s", total, dest)
    return dest
