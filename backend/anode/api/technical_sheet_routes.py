"""
Technical Sheet Routes — PDF rendering and circuit template lookup.

POST /api/technical-sheets/pdf                      — render a sheet and return the PDF
GET  /api/technical-sheets/templates                — available panel sizes
GET  /api/technical-sheets/templates/{panel_size}   — starter circuits for a panel size
"""
import logging
import os
from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from anode.config import DOWNLOAD_DIR
from anode.models.technical_sheet import TechnicalSheetRecord
from anode.services.asset_fetcher import prefetch_images
from anode.services.circuit_templates import (
    UnknownPanelSize,
    list_panel_sizes,
    template_for_panel,
    to_circuit_rows,
)
from anode.services.technical_sheet_engine import DocumentGenerationFailure, TechnicalSheetEngine

router = APIRouter(prefix="/api/technical-sheets", tags=["Technical Sheets"])
logger = logging.getLogger("anode-api.technical-sheets")


@router.post("/pdf")
async def generate_technical_sheet_pdf(sheet: TechnicalSheetRecord, request: Request):
    """Render the posted sheet. Logo and signature are downloaded first; failures fall back to placeholders."""
    images = await prefetch_images(sheet.image_refs())
    engine = TechnicalSheetEngine(resolve_image=images.get)
    try:
        path = await run_in_threadpool(engine.render_to_file, sheet, DOWNLOAD_DIR)
    except DocumentGenerationFailure as e:
        logger.error(f"Technical sheet PDF failed for '{sheet.location_label}': {e.__cause__}")
        raise HTTPException(status_code=500, detail=str(e))
    except OSError as e:
        logger.error(f"Could not write technical sheet to {DOWNLOAD_DIR}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=DocumentGenerationFailure.USER_MESSAGE)

    filename = os.path.basename(path)
    request.state.sheet_filename = filename
    return FileResponse(path, media_type="application/pdf", filename=filename)


@router.get("/templates")
async def list_templates():
    return {"panel_sizes": list_panel_sizes()}


@router.get("/templates/{panel_size}")
async def get_template(panel_size: int):
    """Starter circuits for a panel, plus the same circuits as sheet rows ready to post back."""
    try:
        templates = template_for_panel(panel_size)
    except UnknownPanelSize:
        raise HTTPException(
            status_code=404,
            detail=f"No circuit template for a {panel_size}-circuit panel. Available: {list_panel_sizes()}",
        )
    return {
        "panel_size": panel_size,
        "circuits": [asdict(t) for t in templates],
        "circuitos": [row.model_dump(by_alias=True) for row in to_circuit_rows(templates)],
    }
