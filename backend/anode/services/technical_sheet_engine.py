"""
Technical Sheet Engine — renders the printable "ficha técnica" of an electrical
distribution panel.

One pass, top to bottom, on a DocumentSurface:
  1. Header band (brand wordmark, glyph, logo or company name)
  2. Identification block (title, location, installation date, responsible, version)
  3. Circuit table (auto-paginating, header repeated per page)
  4. Observations (reference standard, residual-current device, online access)
  5. QR / contact block (QR or placeholder, electrician, signature, contacts)
  6. Gatehouse block (only when an extension number is given)
  7. Footer pass over every page ("Página X de N" + update stamp)
  8. Save under ficha-tecnica_<location slug>.pdf

Every render owns its surface and cursor; nothing here is shared between calls.
"""
import logging
import os
import re
import time
import unicodedata
from datetime import date, datetime
from typing import Callable, List, Optional

from reportlab.lib.units import mm

from anode.config import (
    ACCENT_ORANGE,
    BRAND_WORDMARK,
    DATE_FORMATS,
    DEFAULT_ACCESS_TEXT,
    DEFAULT_LOCALE,
    DEFAULT_SHEET_TITLE,
    DEFAULT_STANDARD_NOTE,
    DOWNLOAD_DIR,
    ELECTRICIAN_ROLE,
    FILENAME_FALLBACK_SLUG,
    FILENAME_PREFIX,
    HEADER_BLUE,
    MISSING_DATE,
    MISSING_VALUE,
    PLACEHOLDER_GRAY,
    RULE_GRAY,
    SHEET_RENDER_QR,
    TABLE_HEAD_FILL,
    TABLE_STRIPE_FILL,
    TEXT_DARK,
    WHATSAPP_GREEN,
    WHITE,
)
from anode.models.technical_sheet import RenderedSheet, TechnicalSheetRecord
from anode.services.document_surface import (
    DocumentSurface,
    LayoutOverflow,
    ReportLabSurface,
    TableTheme,
    wrap_text,
)
from anode.services.perf_monitor import tracker as perf_tracker

logger = logging.getLogger("anode-sheet")

ImageResolver = Callable[[str], Optional[bytes]]

# ── Geometry ──────────────────────────────────────────────────────────────────

MARGIN = 10 * mm
HEADER_HEIGHT = 40 * mm
LINE_H = 5 * mm
LABEL_W = 28 * mm
COMPANY_NAME_MAX_W = 60 * mm
LOGO_W, LOGO_H = 35 * mm, 20 * mm
FOOTER_RESERVE = 15 * mm
FOOTER_Y = 5 * mm
OBSERVATIONS_RESERVE = 60 * mm
CONTACT_RESERVE = 50 * mm
GATEHOUSE_RESERVE = 20 * mm
QR_SIZE = 25 * mm
SIGNATURE_W, SIGNATURE_H = 40 * mm, 8 * mm

TABLE_HEAD = ["Nº", "Circuito", "Disjuntor", "Cabo (mm²)", "Observações"]
COL_NUMBER_W = 15 * mm
COL_BREAKER_W = 35 * mm
COL_CABLE_W = 30 * mm
# Share of the remaining width given to the circuit name; notes get the rest
CIRCUIT_NAME_SHARE = 0.45

CIRCUIT_TABLE_THEME = TableTheme(
    head_fill=TABLE_HEAD_FILL,
    head_text=TEXT_DARK,
    head_size=9,
    body_text=TEXT_DARK,
    body_size=8,
    stripe_fill=TABLE_STRIPE_FILL,
    cell_padding=1.5 * mm,
)

CONTACT_LABELS = (
    ("site", "Site"),
    ("instagram", "Instagram"),
    ("facebook", "Facebook"),
    ("whatsapp", "WhatsApp"),
)


class DocumentGenerationFailure(Exception):
    """The technical sheet could not be rendered. No file was produced."""

    USER_MESSAGE = "Não foi possível gerar o arquivo PDF."

    def __init__(self, message: str = USER_MESSAGE):
        super().__init__(message)


# ── Formatting helpers ────────────────────────────────────────────────────────

def sheet_slug(location_label: str) -> str:
    """'Bloco A - Ap 204' -> 'bloco_a_-_ap_204'."""
    folded = unicodedata.normalize("NFKD", location_label or "")
    folded = folded.encode("ascii", "ignore").decode("ascii").lower().strip()
    slug = re.sub(r"\s+", "_", folded)
    slug = re.sub(r"[^a-z0-9_-]", "_", slug)
    slug = re.sub(r"_{2,}", "_", slug).strip("_")
    return slug or FILENAME_FALLBACK_SLUG


def sheet_filename(location_label: str) -> str:
    return f"{FILENAME_PREFIX}{sheet_slug(location_label)}.pdf"


def format_sheet_date(value, locale: str = DEFAULT_LOCALE) -> str:
    if value is None:
        return MISSING_DATE
    if not isinstance(value, (date, datetime)):
        raise TypeError(f"expected date or datetime, got {type(value).__name__}")
    return value.strftime(DATE_FORMATS[locale])


def _or_dash(value: Optional[str]) -> str:
    if value is None:
        return MISSING_VALUE
    value = str(value).strip()
    return value or MISSING_VALUE


def _clamp_text(surface: DocumentSurface, text: str, font: str, size: float, max_w: float) -> str:
    """Cut `text` with an ellipsis until it fits in max_w."""
    if surface.string_width(text, font, size) <= max_w:
        return text
    ellipsis = "…"
    while text and surface.string_width(text + ellipsis, font, size) > max_w:
        text = text[:-1]
    return text.rstrip() + ellipsis


class _SheetWriter:
    """Layout cursor for one render: the surface, page geometry and current y."""

    def __init__(self, surface: DocumentSurface):
        self.surface = surface
        self.page_w, self.page_h = surface.page_size
        self.content_w = self.page_w - 2 * MARGIN
        self.y = self.page_h

    def new_page(self) -> float:
        self.surface.new_page()
        self.y = self.page_h - MARGIN
        return self.y

    def ensure_room(self, block_h: float, reserve: float = 0.0) -> None:
        """
        Start a new page unless a block of block_h fits between the cursor and
        the footer, and the cursor is at least `reserve` from the page bottom.
        """
        needed = max(reserve, FOOTER_RESERVE + block_h)
        if self.y >= needed:
            return
        self.new_page()
        if self.y < needed:
            raise LayoutOverflow(
                f"block of {block_h:.1f}pt does not fit on an empty page ({self.y - FOOTER_RESERVE:.1f}pt)"
            )

    def table_break(self) -> float:
        """Callback for the auto-table: the surface has already started the page."""
        self.y = self.page_h - MARGIN
        return self.y

    def wrap(self, text: str, max_w: float, font: str = "Helvetica", size: float = 10) -> List[str]:
        return wrap_text(self.surface, text, font, size, max_w)

    def draw_lines(self, x: float, y: float, lines: List[str],
                   font: str = "Helvetica", size: float = 10, color=TEXT_DARK) -> int:
        """Draw pre-wrapped lines with the first baseline at y. Returns the line count."""
        for i, line in enumerate(lines):
            self.surface.text(x, y - i * LINE_H, line, font=font, size=size, color=color)
        return len(lines)


class TechnicalSheetEngine:
    """
    Renders TechnicalSheetRecord -> PDF.

    Collaborators are injectable:
      surface_factory — builds a fresh DocumentSurface per render
      resolve_image   — url -> image bytes (or None) for logo and signature;
                        must not block on the network, prefetch instead
      render_qr       — draw a real QR code of the public link instead of the placeholder
      clock           — "now" for the footer stamp when the record has no created_at
      locale          — date format of every printed date
    """

    def __init__(
        self,
        surface_factory: Optional[Callable[[], DocumentSurface]] = None,
        resolve_image: Optional[ImageResolver] = None,
        render_qr: Optional[bool] = None,
        clock: Optional[Callable[[], datetime]] = None,
        locale: str = DEFAULT_LOCALE,
    ):
        if locale not in DATE_FORMATS:
            raise ValueError(f"Unsupported locale '{locale}' (known: {', '.join(sorted(DATE_FORMATS))})")
        self.surface_factory = surface_factory or ReportLabSurface
        self.resolve_image = resolve_image or (lambda url: None)
        self.render_qr = SHEET_RENDER_QR if render_qr is None else render_qr
        self.clock = clock or datetime.now
        self.locale = locale

    def render(self, sheet: TechnicalSheetRecord) -> RenderedSheet:
        """Lay out and save the sheet. Raises DocumentGenerationFailure on any drawing error."""
        start = time.perf_counter()
        try:
            w = _SheetWriter(self.surface_factory())
            self._draw_header(w, sheet)
            self._draw_identification(w, sheet)
            self._draw_circuit_table(w, sheet)
            self._draw_observations(w, sheet)
            qr_end, contact_end = self._draw_qr_and_contact(w, sheet)
            self._draw_gatehouse(w, sheet, min(qr_end, contact_end) - 10 * mm)
            page_count = self._draw_footers(w, sheet)

            filename = sheet_filename(sheet.location_label)
            content = w.surface.save(filename)
        except Exception as e:
            perf_tracker.record_failure()
            logger.error(f"Technical sheet generation failed for '{sheet.location_label}': {e}", exc_info=True)
            raise DocumentGenerationFailure() from e

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        perf_tracker.record_render(duration_ms, page_count)
        logger.info(
            f"Technical sheet generated: {filename} ({page_count} pages, {len(sheet.circuits)} circuits)",
            extra={"duration_ms": duration_ms, "sheet_filename": filename, "page_count": page_count},
        )
        return RenderedSheet(filename=filename, content=content, page_count=page_count)

    def render_to_file(self, sheet: TechnicalSheetRecord, directory: str = DOWNLOAD_DIR) -> str:
        """Render and write into `directory`. Returns the file path."""
        rendered = self.render(sheet)
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, rendered.filename)
        with open(path, "wb") as f:
            f.write(rendered.content)
        return path

    # ── 1. Header band ────────────────────────────────────────────────────────

    def _draw_header(self, w: _SheetWriter, sheet: TechnicalSheetRecord) -> None:
        s = w.surface
        s.rect(0, w.page_h - HEADER_HEIGHT, w.page_w, HEADER_HEIGHT, fill=HEADER_BLUE)
        s.circle(w.page_w / 2, w.page_h - 15 * mm, 5 * mm, fill=ACCENT_ORANGE)
        s.text(w.page_w / 2, w.page_h - 30 * mm, BRAND_WORDMARK,
               font="Helvetica-Bold", size=18, color=WHITE, align="center")

        right = w.page_w - MARGIN
        company = (sheet.company_name or "").strip()
        if sheet.company_logo_ref:
            logo = self.resolve_image(sheet.company_logo_ref)
            if logo:
                s.image(logo, right - LOGO_W, w.page_h - 5 * mm - LOGO_H, LOGO_W, LOGO_H)
            else:
                label = _clamp_text(s, f"Logo: {company or 'Empresa'}", "Helvetica", 8, COMPANY_NAME_MAX_W)
                s.text(right, w.page_h - 12 * mm, label, size=8, color=WHITE, align="right")
        elif company:
            name = _clamp_text(s, company, "Helvetica", 9, COMPANY_NAME_MAX_W)
            s.text(right, w.page_h - 12 * mm, name, size=9, color=WHITE, align="right")

        w.y = w.page_h - HEADER_HEIGHT - 10 * mm

    # ── 2. Identification ─────────────────────────────────────────────────────

    def _draw_identification(self, w: _SheetWriter, sheet: TechnicalSheetRecord) -> None:
        s = w.surface
        title = sheet.title.strip() or DEFAULT_SHEET_TITLE
        title = _clamp_text(s, title, "Helvetica-Bold", 16, w.content_w)
        s.text(w.page_w / 2, w.y, title, font="Helvetica-Bold", size=16, color=TEXT_DARK, align="center")
        w.y -= 8 * mm

        fields = [
            ("Local:", _or_dash(sheet.location_label)),
            ("Data:", format_sheet_date(sheet.installation_date, self.locale)),
            ("Responsável:", _or_dash(sheet.technical_responsible)),
            ("Versão:", _or_dash(sheet.sheet_version)),
        ]
        value_w = w.content_w - LABEL_W
        for label, value in fields:
            lines = w.wrap(value, value_w)
            w.ensure_room((len(lines) - 1) * LINE_H)
            s.text(MARGIN, w.y, label, font="Helvetica-Bold", size=10, color=TEXT_DARK)
            w.draw_lines(MARGIN + LABEL_W, w.y, lines)
            w.y -= len(lines) * LINE_H + 1 * mm

    # ── 3. Circuit table ──────────────────────────────────────────────────────

    def _circuit_col_widths(self, content_w: float) -> List[float]:
        rest = content_w - COL_NUMBER_W - COL_BREAKER_W - COL_CABLE_W
        name_w = rest * CIRCUIT_NAME_SHARE
        return [COL_NUMBER_W, name_w, COL_BREAKER_W, COL_CABLE_W, rest - name_w]

    def _draw_circuit_table(self, w: _SheetWriter, sheet: TechnicalSheetRecord) -> None:
        w.y -= 4 * mm
        w.ensure_room(20 * mm)
        w.surface.text(MARGIN, w.y, "Distribuição dos Circuitos",
                       font="Helvetica-Bold", size=12, color=TEXT_DARK)
        w.y -= 3 * mm

        body = [
            [str(i + 1), _or_dash(c.name), _or_dash(c.breaker), _or_dash(c.cable_gauge), _or_dash(c.notes)]
            for i, c in enumerate(sheet.circuits)
        ]
        w.y = w.surface.table(
            TABLE_HEAD, body, self._circuit_col_widths(w.content_w),
            x=MARGIN, top=w.y, bottom=FOOTER_RESERVE,
            theme=CIRCUIT_TABLE_THEME, on_page_break=w.table_break,
        )
        w.y -= 5 * mm

    # ── 4. Observations ───────────────────────────────────────────────────────

    def _draw_observations(self, w: _SheetWriter, sheet: TechnicalSheetRecord) -> None:
        s = w.surface
        status = "instalado" if sheet.residual_device_installed else "não instalado"
        dr_text = f"Observações: Disjuntor DR {status}."
        extra = (sheet.residual_device_extra_note or "").strip()
        if extra:
            dr_text += f" {extra}"
        dr_lines = w.wrap(dr_text, w.content_w)
        # note line + DR lines + gap, access line baseline at the bottom
        w.ensure_room((len(dr_lines) + 1) * LINE_H + 2 * mm, OBSERVATIONS_RESERVE)

        note = (sheet.reference_standard_note or "").strip() or DEFAULT_STANDARD_NOTE
        s.text(MARGIN, w.y, note, size=10, color=TEXT_DARK)
        w.y -= LINE_H

        w.draw_lines(MARGIN, w.y, dr_lines)
        w.y -= len(dr_lines) * LINE_H + 2 * mm

        access = (sheet.public_access_text or "").strip() or DEFAULT_ACCESS_TEXT
        s.text(MARGIN, w.y, access, size=10, color=TEXT_DARK)
        w.y -= 8 * mm

    # ── 5. QR + contact ───────────────────────────────────────────────────────

    def _draw_qr_and_contact(self, w: _SheetWriter, sheet: TechnicalSheetRecord):
        """Returns (qr block bottom, contact block bottom)."""
        s = w.surface
        x = w.page_w / 2 + 5 * mm
        name_lines = w.wrap(_or_dash(sheet.electrician_name), w.content_w / 2 - 10 * mm)
        contacts = []
        if (sheet.company_name or "").strip() and sheet.company_contacts:
            for attr, label in CONTACT_LABELS:
                value = (getattr(sheet.company_contacts, attr) or "").strip()
                if value:
                    contacts.append(f"{label}: {value}")

        # contact column: name lines, role, signature, contact dot (r=1.5mm under a -15mm centre), channels
        contact_h = 5 * mm + (len(name_lines) - 1) * LINE_H + 16.5 * mm + len(contacts) * 4 * mm
        w.ensure_room(max(QR_SIZE + 8 * mm, contact_h), CONTACT_RESERVE)
        top = w.y
        link = (sheet.public_sheet_link or "").strip()

        if self.render_qr and link:
            s.qr_code(link, MARGIN, top - QR_SIZE, QR_SIZE)
        else:
            s.rect(MARGIN, top - QR_SIZE, QR_SIZE, QR_SIZE, fill=PLACEHOLDER_GRAY)
            s.text(MARGIN + QR_SIZE / 2, top - QR_SIZE / 2 - 1 * mm, "QR",
                   size=8, color=TEXT_DARK, align="center")
        s.text(MARGIN, top - QR_SIZE - 4 * mm, "» Informação completa", size=8, color=TEXT_DARK)
        s.text(MARGIN, top - QR_SIZE - 8 * mm,
               _clamp_text(s, link or MISSING_VALUE, "Helvetica", 8, w.content_w / 2 - 5 * mm),
               size=8, color=TEXT_DARK)
        qr_end = top - QR_SIZE - 8 * mm

        w.draw_lines(x, top - 5 * mm, name_lines)
        cy = top - 5 * mm - (len(name_lines) - 1) * LINE_H
        s.text(x, cy - 4 * mm, ELECTRICIAN_ROLE, size=8, color=TEXT_DARK)

        if sheet.electrician_signature_ref:
            signature = self.resolve_image(sheet.electrician_signature_ref)
            if signature:
                s.image(signature, x, cy - 6 * mm - SIGNATURE_H, SIGNATURE_W, SIGNATURE_H)
            else:
                s.text(x, cy - 10 * mm, "Assinatura: (Digital)", size=8, color=TEXT_DARK)
        else:
            s.line(x, cy - 8 * mm, x + SIGNATURE_W, cy - 8 * mm, color=TEXT_DARK)

        s.circle(x - 1 * mm, cy - 15 * mm, 1.5 * mm, fill=WHATSAPP_GREEN)
        s.text(x + 3 * mm, cy - 16 * mm, _or_dash(sheet.electrician_contact), size=8, color=TEXT_DARK)
        contact_end = cy - 16 * mm

        for line in contacts:
            contact_end -= 4 * mm
            s.text(x, contact_end, line, size=8, color=TEXT_DARK)

        return qr_end, contact_end

    # ── 6. Gatehouse ──────────────────────────────────────────────────────────

    def _draw_gatehouse(self, w: _SheetWriter, sheet: TechnicalSheetRecord, y: float) -> None:
        w.y = y
        extension = (sheet.gatehouse_extension or "").strip()
        if not extension:
            return
        w.ensure_room(7 * mm, GATEHOUSE_RESERVE)
        s = w.surface
        s.line(MARGIN, w.y, w.page_w - MARGIN, w.y, color=RULE_GRAY)
        w.y -= 5 * mm
        s.text(MARGIN, w.y, "Portaria", font="Helvetica-Bold", size=10, color=TEXT_DARK)
        s.text(MARGIN + 25 * mm, w.y, extension, size=10, color=TEXT_DARK)
        s.line(MARGIN, w.y - 2 * mm, w.page_w - MARGIN, w.y - 2 * mm, color=RULE_GRAY)
        w.y -= 7 * mm

    # ── 7. Footer ─────────────────────────────────────────────────────────────

    def _draw_footers(self, w: _SheetWriter, sheet: TechnicalSheetRecord) -> int:
        s = w.surface
        stamped = sheet.created_at or self.clock()
        stamp = f"Ficha técnica atualizada em {format_sheet_date(stamped, self.locale)}"
        total = s.page_count()
        for page_no in range(1, total + 1):
            s.go_to_page(page_no)
            s.text(w.page_w / 2, FOOTER_Y, stamp, size=8, color=TEXT_DARK, align="center")
            s.text(w.page_w - MARGIN, FOOTER_Y, f"Página {page_no} de {total}",
                   size=8, color=TEXT_DARK, align="right")
        return total
