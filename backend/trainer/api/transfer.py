"""
Export/Import API endpoints.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from trainer.api.deps import get_transfer_codec
from trainer.core.logging import get_logger
from trainer.services import ExportImportCodec

logger = get_logger(__name__)
router = APIRouter()


@router.get("/export")
async def export_data(
    codec: ExportImportCodec = Depends(get_transfer_codec),
):
    """
    Export all activities (grouped by week) and activity types.
    """
    document = await codec.export_data()
    return JSONResponse(
        content=document,
        headers={"Content-Disposition": 'attachment; filename="trainer-export.json"'},
    )


@router.post("/import")
async def import_data(
    request: Request,
    codec: ExportImportCodec = Depends(get_transfer_codec),
):
    """
    Import a previously exported document (raw JSON body).
    
    Malformed documents are rejected with 400 before anything is written.
    """
    body = await request.body()
    result = await codec.import_data(body)
    
    return {
        "activitiesImported": result.activities_imported,
        "activityTypesImported": result.activity_types_imported,
        "weeksWritten": result.weeks_written,
        "nextId": result.next_id,
    }
