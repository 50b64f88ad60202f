"""
Document Surface — the drawing primitives the layout engines are written against.

DocumentSurface is deliberately small: filled shapes, lines, styled text with
measurement, raster images, a QR code, an auto-paginating table and page
bookkeeping (count, revisit, save). ReportLabSurface implements it on a
ReportLab canvas; the test suite implements it with a recording fake.

Coordinates are PDF points with the origin at the bottom-left corner, the
same convention the ReportLab canvas uses.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Callable, List, Protocol, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Paragraph, Table, TableStyle

logger = logging.getLogger("anode-surface")

RGB = Tuple[float, float, float]
BLACK: RGB = (0, 0, 0)

# Tolerance for float rounding when comparing a wrapped table height to the room left
_FIT_EPSILON = 0.01


class LayoutOverflow(Exception):
    """Content that cannot be placed even on an empty page."""


@dataclass(frozen=True)
class TableTheme:
    """Per-table styling handed to DocumentSurface.table()."""
    head_fill: RGB = (0.86, 0.86, 0.86)
    head_text: RGB = (0.2, 0.2, 0.2)
    head_font: str = "Helvetica-Bold"
    head_size: float = 9
    body_text: RGB = (0.2, 0.2, 0.2)
    body_font: str = "Helvetica"
    body_size: float = 8
    stripe_fill: RGB = (0.96, 0.96, 0.96)
    grid_color: RGB = (0.75, 0.75, 0.75)
    grid_width: float = 0.5
    cell_padding: float = 4.25


class DocumentSurface(Protocol):
    """Drawing primitives consumed by the layout engines."""

    @property
    def page_size(self) -> Tuple[float, float]: ...

    def rect(self, x: float, y: float, w: float, h: float, fill: RGB) -> None: ...

    def circle(self, x: float, y: float, r: float, fill: RGB) -> None: ...

    def line(self, x1: float, y1: float, x2: float, y2: float,
             color: RGB = BLACK, width: float = 0.5) -> None: ...

    def text(self, x: float, y: float, value: str, font: str = "Helvetica",
             size: float = 10, color: RGB = BLACK, align: str = "left") -> None: ...

    def string_width(self, value: str, font: str, size: float) -> float: ...

    def image(self, data: bytes, x: float, y: float, w: float, h: float) -> None: ...

    def qr_code(self, payload: str, x: float, y: float, size: float) -> None: ...

    def table(self, head: Sequence[str], body: Sequence[Sequence[str]],
              col_widths: Sequence[float], x: float, top: float, bottom: float,
              theme: TableTheme, on_page_break: Callable[[], float]) -> float: ...

    def new_page(self) -> None: ...

    def page_count(self) -> int: ...

    def go_to_page(self, page_no: int) -> None: ...

    def save(self, filename: str) -> bytes: ...


def wrap_text(surface: DocumentSurface, text: str, font: str, size: float, max_width: float) -> List[str]:
    """
    Greedy word wrap measured with the surface's own string_width, so the
    height computed from the returned lines matches what gets drawn.
    A single word wider than max_width stays on its own line.
    """
    lines: List[str] = []
    for paragraph in (text or "").split("\n"):
        line = ""
        for word in paragraph.split():
            candidate = f"{line} {word}".strip()
            if not line or surface.string_width(candidate, font, size) <= max_width:
                line = candidate
            else:
                lines.append(line)
                line = word
        lines.append(line)
    return lines


# ── ReportLab implementation ──────────────────────────────────────────────────

class _HeldPageCanvas(Canvas):
    """
    Canvas that keeps finished pages in memory until save(), so earlier pages
    can be reopened and drawn on once the final page count is known.
    """

    def __init__(self, *args, **kwargs):
        Canvas.__init__(self, *args, **kwargs)
        self._held_pages: List[dict] = []

    def showPage(self):
        self._held_pages.append(dict(self.__dict__))
        self._startPage()

    def held_page_count(self) -> int:
        return len(self._held_pages)

    def reopen(self, page_no: int) -> None:
        # The held state shares its content-stream list with the canvas, so
        # anything drawn now lands on that page.
        self.__dict__.update(self._held_pages[page_no - 1])

    def save(self):
        for state in self._held_pages:
            self.__dict__.update(state)
            Canvas.showPage(self)
        Canvas.save(self)


class ReportLabSurface:
    """DocumentSurface on a ReportLab canvas writing to an in-memory buffer."""

    def __init__(self, pagesize: Tuple[float, float] = A4, title: str = "", author: str = ""):
        self._buffer = io.BytesIO()
        # invariant=1 pins the creation date and document id so identical input gives identical bytes
        self._canvas = _HeldPageCanvas(self._buffer, pagesize=pagesize, invariant=1)
        if title:
            self._canvas.setTitle(title)
        if author:
            self._canvas.setAuthor(author)
        self._pagesize = pagesize
        self._page_open = True

    @property
    def page_size(self) -> Tuple[float, float]:
        return self._pagesize

    # ── Shapes & text ─────────────────────────────────────────────────────────

    def rect(self, x, y, w, h, fill):
        c = self._canvas
        c.setFillColorRGB(*fill)
        c.rect(x, y, w, h, fill=1, stroke=0)

    def circle(self, x, y, r, fill):
        c = self._canvas
        c.setFillColorRGB(*fill)
        c.circle(x, y, r, fill=1, stroke=0)

    def line(self, x1, y1, x2, y2, color=BLACK, width=0.5):
        c = self._canvas
        c.setStrokeColorRGB(*color)
        c.setLineWidth(width)
        c.line(x1, y1, x2, y2)

    def text(self, x, y, value, font="Helvetica", size=10, color=BLACK, align="left"):
        c = self._canvas
        c.setFillColorRGB(*color)
        c.setFont(font, size)
        if align == "center":
            c.drawCentredString(x, y, value)
        elif align == "right":
            c.drawRightString(x, y, value)
        else:
            c.drawString(x, y, value)

    def string_width(self, value, font, size):
        return self._canvas.stringWidth(value, font, size)

    def image(self, data, x, y, w, h):
        self._canvas.drawImage(
            ImageReader(io.BytesIO(data)), x, y, width=w, height=h,
            preserveAspectRatio=True, anchor="c", mask="auto",
        )

    def qr_code(self, payload, x, y, size):
        widget = QrCodeWidget(payload)
        x0, y0, x1, y1 = widget.getBounds()
        bw, bh = x1 - x0, y1 - y0
        drawing = Drawing(size, size, transform=[size / bw, 0, 0, size / bh, 0, 0])
        drawing.add(widget)
        renderPDF.draw(drawing, self._canvas, x, y)

    # ── Auto-table ────────────────────────────────────────────────────────────

    def table(self, head, body, col_widths, x, top, bottom, theme, on_page_break):
        """
        Draw head + body starting at `top`, splitting across pages whenever the
        rows reach `bottom`. The head row is repeated on every page. On each
        break a new page is started and `on_page_break()` supplies the new top.
        Returns the y just below the last drawn row.
        """
        head_style = ParagraphStyle(
            "table-head", fontName=theme.head_font, fontSize=theme.head_size,
            leading=theme.head_size * 1.2, textColor=colors.Color(*theme.head_text),
        )
        body_style = ParagraphStyle(
            "table-body", fontName=theme.body_font, fontSize=theme.body_size,
            leading=theme.body_size * 1.2, textColor=colors.Color(*theme.body_text),
        )
        data = [[Paragraph(escape(cell), head_style) for cell in head]]
        data += [[Paragraph(escape(cell), body_style) for cell in row] for row in body]

        tbl = Table(data, colWidths=list(col_widths), repeatRows=1, hAlign="LEFT")
        tbl.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.Color(*theme.head_fill)),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.Color(*theme.stripe_fill)]),
            ("GRID", (0, 0), (-1, -1), theme.grid_width, colors.Color(*theme.grid_color)),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), theme.cell_padding),
            ("RIGHTPADDING", (0, 0), (-1, -1), theme.cell_padding),
            ("TOPPADDING", (0, 0), (-1, -1), theme.cell_padding),
            ("BOTTOMPADDING", (0, 0), (-1, -1), theme.cell_padding),
        ]))

        avail_w = sum(col_widths)
        y = top
        pending = [tbl]
        fresh_page = False
        while pending:
            part = pending.pop(0)
            avail_h = y - bottom
            _, h = part.wrapOn(self._canvas, avail_w, avail_h)
            if h <= avail_h + _FIT_EPSILON:
                part.drawOn(self._canvas, x, y - h)
                y -= h
                fresh_page = False
                continue
            pieces = part.splitOn(self._canvas, avail_w, avail_h)
            if pieces and pieces[0] is not part:
                pending[0:0] = pieces
                continue
            if fresh_page:
                raise LayoutOverflow(
                    f"table row does not fit on an empty page ({h:.1f}pt > {avail_h:.1f}pt)"
                )
            self.new_page()
            y = on_page_break()
            fresh_page = True
            pending.insert(0, part)
        return y

    # ── Pages ─────────────────────────────────────────────────────────────────

    def new_page(self):
        self._canvas.showPage()
        self._page_open = True

    def _close_open_page(self):
        if self._page_open:
            self._canvas.showPage()
            self._page_open = False

    def page_count(self):
        self._close_open_page()
        return self._canvas.held_page_count()

    def go_to_page(self, page_no):
        self._close_open_page()
        total = self._canvas.held_page_count()
        if not 1 <= page_no <= total:
            raise IndexError(f"page {page_no} out of range 1..{total}")
        self._canvas.reopen(page_no)

    def save(self, filename):
        self._close_open_page()
        self._canvas.save()
        data = self._buffer.getvalue()
        logger.debug(f"Surface saved {filename}: {len(data)} bytes")
        return data
