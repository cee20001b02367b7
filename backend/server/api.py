"""
Schema API routes: mounted as a sub-router on the main FastAPI app.

POST /api/schema         records in the JSON body
POST /api/schema/upload  records in an uploaded JSON file
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, File, HTTPException, Query, UploadFile

from core.models import SchemaRequest
from server.orchestrator import run_deduce
from skills.profile import InvalidInputError
from skills.summary import summarize_schema

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["schema"])


def _derive(records: Any, include_totals: bool) -> Dict[str, Any]:
    try:
        schema = run_deduce(records)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=f"Invalid input: {e}")
    except Exception as e:
        logger.exception("Schema derivation failed")
        raise HTTPException(status_code=500, detail=f"Schema derivation failed: {e}")
    return summarize_schema(schema, include_totals=include_totals)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/schema")
async def derive_schema(body: SchemaRequest):
    """Derive dimensions, metrics and recommended views for the posted records."""
    return _derive(body.records, body.include_totals)


@router.post("/schema/upload")
async def derive_schema_from_file(
    file: UploadFile = File(...),
    include_totals: bool = Query(True),
):
    """
    Same as POST /schema, reading records from an uploaded JSON file.

    The file may hold a bare list of records or {"records": [...]}.
    """
    content = await file.read()
    try:
        payload = json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON: {e}")

    if isinstance(payload, dict) and "records" in payload:
        payload = payload["records"]

    logger.info("Upload %s: %d bytes", file.filename or "records.json", len(content))
    return _derive(payload, include_totals)
