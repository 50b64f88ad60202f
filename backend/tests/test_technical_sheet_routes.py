"""
test_technical_sheet_routes.py — HTTP surface of the technical-sheet service.

Tests cover:
  - POST /api/technical-sheets/pdf: PDF download with the derived filename
  - Render failures mapped to HTTP 500 with the user-facing message
  - Template listing and lookup, 404 for unknown panel sizes
  - /health and /metrics, request tracing, request log lines and security headers
"""

import pytest
from fastapi.testclient import TestClient

import anode.api.technical_sheet_routes as routes
from anode.main import app
from anode.services.technical_sheet_engine import DocumentGenerationFailure

SHEET_PAYLOAD = {
    "identificacaoLocal": "Bloco A - Ap 204",
    "dataInstalacao": "2024-03-05",
    "responsavelTecnico": "Maria Souza",
    "circuitos": [
        {"nome": "Iluminação Sala", "disjuntor": "10A", "caboMM": "1,5"},
        {"nome": "Tomadas Cozinha", "disjuntor": "20A", "caboMM": "2,5", "observacoes": "Bancada"},
    ],
    "observacaoDR": True,
    "nomeEletricista": "João Pereira",
    "ramalPortaria": "1234",
    "dataCriacao": "2024-04-10T14:00:00",
}


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(routes, "DOWNLOAD_DIR", str(tmp_path))
    return TestClient(app)


# ===========================================================================
# Class 1: PDF endpoint
# ===========================================================================

class TestPdfEndpoint:

    def test_returns_pdf(self, client, tmp_path):
        r = client.post("/api/technical-sheets/pdf", json=SHEET_PAYLOAD)
        assert r.status_code == 200
        assert r.headers["content-type"] == "application/pdf"
        assert "ficha-tecnica_bloco_a_-_ap_204.pdf" in r.headers["content-disposition"]
        assert r.content.startswith(b"%PDF")
        assert (tmp_path / "ficha-tecnica_bloco_a_-_ap_204.pdf").exists()

    def test_empty_body_uses_defaults(self, client):
        r = client.post("/api/technical-sheets/pdf", json={})
        assert r.status_code == 200
        assert "ficha-tecnica_geral.pdf" in r.headers["content-disposition"]

    def test_render_failure_is_500(self, client, monkeypatch):
        def boom(self, sheet, directory):
            raise DocumentGenerationFailure()

        monkeypatch.setattr(routes.TechnicalSheetEngine, "render_to_file", boom)
        r = client.post("/api/technical-sheets/pdf", json=SHEET_PAYLOAD)
        assert r.status_code == 500
        assert r.json()["detail"] == "Não foi possível gerar o arquivo PDF."

    def test_invalid_body_is_422(self, client):
        r = client.post("/api/technical-sheets/pdf", json={"circuitos": "not a list"})
        assert r.status_code == 422

    def test_metrics_count_render(self, client):
        client.post("/api/technical-sheets/pdf", json=SHEET_PAYLOAD)
        metrics = client.get("/metrics").json()
        assert metrics["sheets_rendered"] == 1
        assert metrics["pages_rendered"] >= 1
        assert metrics["error_count"] == 0
        assert "uptime_seconds" in metrics


# ===========================================================================
# Class 2: Templates
# ===========================================================================

class TestTemplateEndpoints:

    def test_list(self, client):
        r = client.get("/api/technical-sheets/templates")
        assert r.status_code == 200
        assert r.json() == {"panel_sizes": [6, 8, 12, 18, 24, 32, 44]}

    def test_lookup(self, client):
        r = client.get("/api/technical-sheets/templates/8")
        assert r.status_code == 200
        body = r.json()
        assert body["panel_size"] == 8
        assert [c["number"] for c in body["circuits"]] == list(range(1, 9))
        assert body["circuitos"][6]["nome"] == "Máquina de Lavar Roupa"
        assert body["circuitos"][6]["caboMM"] == "2,5"

    def test_unknown_size_404(self, client):
        r = client.get("/api/technical-sheets/templates/10")
        assert r.status_code == 404

    def test_non_numeric_size_422(self, client):
        r = client.get("/api/technical-sheets/templates/grande")
        assert r.status_code == 422


# ===========================================================================
# Class 3: Service endpoints and middleware
# ===========================================================================

class TestServiceEndpoints:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "active"

    def test_tracing_and_security_headers(self, client):
        r = client.get("/api/technical-sheets/templates")
        assert r.headers["X-Request-ID"]
        assert float(r.headers["X-Process-Time"]) >= 0
        assert r.headers["X-Content-Type-Options"] == "nosniff"

    def test_request_log_carries_sheet_filename(self, client, caplog):
        with caplog.at_level("INFO", logger="anode-api.middleware"):
            client.post("/api/technical-sheets/pdf", json=SHEET_PAYLOAD)
        (record,) = [r for r in caplog.records if r.name == "anode-api.middleware"]
        assert record.sheet_filename == "ficha-tecnica_bloco_a_-_ap_204.pdf"
        assert record.http_status == 200
        assert record.levelname == "INFO"

    def test_server_error_logged_as_warning(self, client, monkeypatch, caplog):
        def boom(self, sheet, directory):
            raise DocumentGenerationFailure()

        monkeypatch.setattr(routes.TechnicalSheetEngine, "render_to_file", boom)
        with caplog.at_level("INFO", logger="anode-api.middleware"):
            client.post("/api/technical-sheets/pdf", json=SHEET_PAYLOAD)
        (record,) = [r for r in caplog.records if r.name == "anode-api.middleware"]
        assert record.levelname == "WARNING"
        assert record.http_status == 500
        assert not hasattr(record, "sheet_filename")

    def test_health_and_metrics_not_logged(self, client, caplog):
        with caplog.at_level("INFO", logger="anode-api.middleware"):
            client.get("/health")
            client.get("/metrics")
        assert [r for r in caplog.records if r.name == "anode-api.middleware"] == []
