"""
Order import API routes.

Two-step upload: preview parses the file and reports warnings, confirm
writes the previewed orders with the chosen duplicate policy.
"""

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from config import settings
from exceptions import AppError
from models.order_import import (
    HeaderMappingOverride,
    ImportOptions,
    ImportResult,
    MarketplaceSummary,
    OrderImportConfirmRequest,
    OrderImportHistoryResponse,
    OrderImportPreview,
)
from parsers.marketplace_profiles import get_profile, list_profiles
from services.marketplace_mapping_service import get_marketplace_mapping_service
from services.order_import_history_service import get_order_import_history_service
from services.order_import_service import get_order_import_service
from services.order_preview_service import get_order_preview_service
from services.preview_cache_service import (
    delete_preview,
    retrieve_preview,
    store_preview,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# MARKETPLACES
# ===================

@router.get("/marketplaces", response_model=list[MarketplaceSummary])
async def list_marketplaces():
    """List supported marketplaces with their user column overrides."""
    try:
        overrides = get_marketplace_mapping_service().get_overrides()
        return [
            MarketplaceSummary(
                id=profile.id,
                name=profile.name,
                description=profile.description,
                identifying_headers=list(profile.identifying_headers),
                custom_mappings=overrides.get(profile.id, []),
            )
            for profile in list_profiles()
        ]
    except Exception as e:
        return handle_error(e)


@router.post("/marketplaces/{marketplace_id}/mappings", response_model=list[HeaderMappingOverride])
async def add_marketplace_mapping(marketplace_id: str, override: HeaderMappingOverride):
    """Add or replace a column override for a marketplace."""
    try:
        return get_marketplace_mapping_service().add_override(marketplace_id, override)
    except Exception as e:
        return handle_error(e)


@router.delete("/marketplaces/{marketplace_id}/mappings", response_model=list[HeaderMappingOverride])
async def remove_marketplace_mapping(
    marketplace_id: str,
    source_column: str = Query(..., min_length=1),
):
    """Remove a column override for a marketplace."""
    try:
        return get_marketplace_mapping_service().remove_override(marketplace_id, source_column)
    except Exception as e:
        return handle_error(e)


# ===================
# UPLOAD
# ===================

@router.post("/preview", response_model=OrderImportPreview)
async def preview_order_import(
    file: UploadFile = File(...),
    marketplace: Optional[str] = Form(None, description="Force a marketplace instead of detecting it"),
):
    """
    Parse an order export and return orders, items and warnings.

    Nothing is written. The preview stays available for confirmation
    for IMPORT_PREVIEW_TTL_MINUTES.
    """
    try:
        if marketplace:
            get_profile(marketplace)

        contents = await file.read()
        preview = get_order_preview_service().preview_file(
            contents,
            file.filename or "upload.csv",
            marketplace_id=marketplace,
        )
        store_preview(preview)
        return preview

    except Exception as e:
        logger.error("order_import_preview_failed", filename=file.filename, error=str(e))
        return handle_error(e)


@router.post("/confirm", response_model=ImportResult)
async def confirm_order_import(request: OrderImportConfirmRequest):
    """
    Import a previewed file.

    Per-order write failures are reported in errors; the rest of the
    batch is still written.
    """
    try:
        preview = retrieve_preview(request.preview_id)

        options = ImportOptions(
            skip_duplicates=(
                request.skip_duplicates
                if request.skip_duplicates is not None
                else settings.import_default_skip_duplicates
            ),
            update_existing=request.update_existing,
        )

        result = get_order_import_service().import_orders(preview.orders, preview.items, options)

        get_order_import_history_service().record_import(
            result,
            import_type=preview.import_type,
            file_name=preview.file_name,
            source=preview.marketplace,
        )
        delete_preview(request.preview_id)

        logger.info(
            "order_import_confirmed",
            preview_id=request.preview_id,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            errors=len(result.errors),
        )
        return result

    except Exception as e:
        return handle_error(e)


@router.delete("/preview/{preview_id}")
async def cancel_order_import(preview_id: str):
    """Discard a preview without importing."""
    delete_preview(preview_id)
    return {"success": True}


# ===================
# HISTORY
# ===================

@router.get("/history", response_model=list[OrderImportHistoryResponse])
async def get_order_import_history(limit: int = Query(50, ge=1, le=200)):
    """Recent order imports, newest first."""
    try:
        return get_order_import_history_service().list_recent(limit)
    except Exception as e:
        return handle_error(e)
