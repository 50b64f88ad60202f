"""
ANODE Lite configuration — single source of truth for environment settings,
page geometry, brand colours and the technical-sheet display defaults.

Import from here in services and routes rather than hardcoding values.
"""
from __future__ import annotations

import os

# Load .env file automatically in dev (no-op if the file is missing)
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ── Runtime environment ────────────────────────────────────────────────────────

DOWNLOAD_DIR: str = os.getenv("DOWNLOAD_DIR", "/tmp/downloads")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"
CORS_ORIGINS: list[str] = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8000").split(",")
    if o.strip()
]

# Draw a real QR code of the public link instead of the grey placeholder square
SHEET_RENDER_QR: bool = _env_flag("SHEET_RENDER_QR", False)

# Seconds allowed for each logo/signature download before falling back to placeholders
IMAGE_FETCH_TIMEOUT: float = float(os.getenv("IMAGE_FETCH_TIMEOUT", "10"))

APP_VERSION = "1.0.0"


# ── Sheet display defaults ─────────────────────────────────────────────────────

DEFAULT_SHEET_TITLE = "FICHA TÉCNICA – QUADRO DE DISTRIBUIÇÃO"
DEFAULT_SHEET_VERSION = "v1.0"
DEFAULT_STANDARD_NOTE = "Conforme NBR 5410"
DEFAULT_ACCESS_TEXT = "Acesso aos projetos online"
DEFAULT_LOCALE = "pt_BR"
BRAND_WORDMARK = "ENERGY"
ELECTRICIAN_ROLE = "Eng. Eletricista"
MISSING_VALUE = "-"
MISSING_DATE = "N/A"

FILENAME_PREFIX = "ficha-tecnica_"
FILENAME_FALLBACK_SLUG = "geral"

# strftime patterns per locale; pt_BR is the only one the product ships
DATE_FORMATS: dict[str, str] = {
    "pt_BR": "%d/%m/%Y",
    "en_US": "%m/%d/%Y",
}


# ── Colours (RGB floats 0-1) ───────────────────────────────────────────────────

HEADER_BLUE = (25 / 255, 75 / 255, 125 / 255)
TEXT_DARK = (51 / 255, 51 / 255, 51 / 255)
WHITE = (1, 1, 1)
ACCENT_ORANGE = (1.0, 152 / 255, 0.0)
WHATSAPP_GREEN = (37 / 255, 211 / 255, 102 / 255)
PLACEHOLDER_GRAY = (230 / 255, 230 / 255, 230 / 255)
RULE_GRAY = (150 / 255, 150 / 255, 150 / 255)
TABLE_HEAD_FILL = (220 / 255, 220 / 255, 220 / 255)
TABLE_STRIPE_FILL = (245 / 255, 245 / 255, 245 / 255)
