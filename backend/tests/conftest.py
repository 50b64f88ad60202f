"""
conftest.py — Shared pytest fixtures for the ANODE Lite backend test suite.

Layout tests run against RecordingSurface, an in-memory DocumentSurface that
keeps every drawing call per page, so assertions can look at what was drawn
where without parsing PDF bytes. Tests that need real output use
ReportLabSurface directly.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``anode.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import io
import os
import sys
from datetime import datetime

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any anode imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

FIXED_NOW = datetime(2024, 6, 1, 9, 30)
A4_POINTS = (595.2756, 841.8898)


# ---------------------------------------------------------------------------
# Recording surface
# ---------------------------------------------------------------------------

class RecordingSurface:
    """
    DocumentSurface fake. Every call lands in ``ops`` as a dict with the op
    name, the 1-based page it was drawn on and its arguments.

    ``rows_per_page`` caps how many table body rows fit on one page before
    the table breaks, so multi-page layouts can be produced with a handful
    of circuits.
    """

    ROW_HEIGHT = 12.0

    def __init__(self, rows_per_page: int = 1000, fail_on: str = ""):
        self.ops = []
        self.current_page = 1
        self.pages = 1
        self.saved_as = None
        self.rows_per_page = rows_per_page
        self.fail_on = fail_on

    @property
    def page_size(self):
        return A4_POINTS

    def _record(self, op, **args):
        if op == self.fail_on:
            raise RuntimeError(f"simulated {op} failure")
        self.ops.append({"op": op, "page": self.current_page, **args})

    def rect(self, x, y, w, h, fill):
        self._record("rect", x=x, y=y, w=w, h=h, fill=fill)

    def circle(self, x, y, r, fill):
        self._record("circle", x=x, y=y, r=r, fill=fill)

    def line(self, x1, y1, x2, y2, color=(0, 0, 0), width=0.5):
        self._record("line", x1=x1, y1=y1, x2=x2, y2=y2, color=color)

    def text(self, x, y, value, font="Helvetica", size=10, color=(0, 0, 0), align="left"):
        self._record("text", x=x, y=y, value=value, font=font, size=size, align=align)

    def string_width(self, value, font, size):
        return len(value) * size * 0.5

    def image(self, data, x, y, w, h):
        self._record("image", data=data, x=x, y=y, w=w, h=h)

    def qr_code(self, payload, x, y, size):
        self._record("qr_code", payload=payload, x=x, y=y, size=size)

    def table(self, head, body, col_widths, x, top, bottom, theme, on_page_break):
        self._record("table", head=list(head), body=[list(r) for r in body],
                     col_widths=list(col_widths), top=top, bottom=bottom)
        y = top - self.ROW_HEIGHT
        on_page = 0
        for _ in body:
            if on_page == self.rows_per_page:
                self.new_page()
                y = on_page_break() - self.ROW_HEIGHT
                on_page = 0
            y -= self.ROW_HEIGHT
            on_page += 1
        return y

    def new_page(self):
        self.pages += 1
        self.current_page = self.pages

    def page_count(self):
        return self.pages

    def go_to_page(self, page_no):
        if not 1 <= page_no <= self.pages:
            raise IndexError(page_no)
        self.current_page = page_no

    def save(self, filename):
        self._record("save", filename=filename)
        self.saved_as = filename
        return b"%PDF-recorded"

    # -- query helpers --------------------------------------------------

    def texts(self, page=None):
        return [o["value"] for o in self.ops
                if o["op"] == "text" and (page is None or o["page"] == page)]

    def of(self, op):
        return [o for o in self.ops if o["op"] == op]


@pytest.fixture
def recording_engine():
    """
    Factory: recording_engine(**surface_kw, **engine_kw) -> (engine, surfaces).
    `surfaces` collects every RecordingSurface the engine creates.
    """
    from anode.services.technical_sheet_engine import TechnicalSheetEngine

    def _make(rows_per_page=1000, fail_on="", **engine_kw):
        surfaces = []

        def factory():
            s = RecordingSurface(rows_per_page=rows_per_page, fail_on=fail_on)
            surfaces.append(s)
            return s

        engine_kw.setdefault("clock", lambda: FIXED_NOW)
        return TechnicalSheetEngine(surface_factory=factory, **engine_kw), surfaces

    return _make


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@pytest.fixture
def full_sheet():
    """
    A sheet with every field filled, as posted by the web client (aliased keys).
    Installation date 2024-03-05, created 2024-04-10.
    """
    from anode.models.technical_sheet import TechnicalSheetRecord
    return TechnicalSheetRecord.model_validate({
        "logotipoEmpresaUrl": "https://cdn.example.com/logo.png",
        "nomeEmpresa": "Acme Elétrica",
        "tituloFicha": "FICHA TÉCNICA – QUADRO DE DISTRIBUIÇÃO",
        "identificacaoLocal": "Bloco A - Ap 204",
        "dataInstalacao": "2024-03-05",
        "responsavelTecnico": "Maria Souza",
        "versaoFicha": "v2.1",
        "circuitos": [
            {"nome": "Iluminação Sala", "disjuntor": "10A Curva B", "caboMM": "1,5", "observacoes": "LED"},
            {"nome": "Tomadas Cozinha", "disjuntor": "20A", "caboMM": "2,5"},
            {"nome": "Chuveiro", "disjuntor": "32A", "caboMM": "6", "observacoes": "Circuito dedicado"},
        ],
        "observacaoNBR": "Conforme NBR 5410:2004",
        "observacaoDR": True,
        "descricaoDROpcional": "DR 30mA no circuito do chuveiro.",
        "textoAcessoOnline": "Acesse a ficha online",
        "linkFichaPublica": "https://anode.example.com/f/abc123",
        "nomeEletricista": "João Pereira",
        "assinaturaEletricistaUrl": "https://cdn.example.com/sig.png",
        "contatoEletricista": "(11) 99999-0000",
        "ramalPortaria": "1234",
        "contatosEmpresa": {"site": "acme.com.br", "instagram": "@acme"},
        "dataCriacao": "2024-04-10T14:00:00",
    })


@pytest.fixture
def minimal_sheet():
    """Only the location label; everything else left to defaults."""
    from anode.models.technical_sheet import TechnicalSheetRecord
    return TechnicalSheetRecord(location_label="Casa 1")


@pytest.fixture
def long_sheet(full_sheet):
    """full_sheet with 120 circuits, enough to push the table onto a second page."""
    from anode.models.technical_sheet import CircuitRow
    rows = [
        CircuitRow(name=f"Circuito {i}", breaker="16A", cable_gauge="2,5", notes="Tomadas")
        for i in range(1, 121)
    ]
    return full_sheet.model_copy(update={"circuits": rows})


@pytest.fixture(scope="session")
def png_bytes():
    """A tiny valid PNG."""
    from PIL import Image
    buf = io.BytesIO()
    Image.new("RGB", (8, 4), (200, 30, 30)).save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def _reset_tracker():
    from anode.services.perf_monitor import tracker
    tracker.reset()
    yield
    tracker.reset()


