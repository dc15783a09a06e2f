"""
FastAPI application for vehicle damage claims.

Provides:
- Claim filing, listing and adjuster updates
- Damage photo upload with mocked damage analysis
- Cost breakdown retrieval and maintenance
- Stored photo file serving
"""

# IMPORTANT: Configure logging FIRST, before any other imports
# This ensures verbose libraries don't spam debug logs
import logging

logging.getLogger("python_multipart").setLevel(logging.WARNING)
logging.getLogger("python_multipart.multipart").setLevel(logging.WARNING)
logging.getLogger("PIL").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

import random
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, Response

from ..claims.analyzer import DamageAnalyzer, create_damage_analyzer
from ..claims.estimator import generate_cost_estimate
from ..claims.schema import (
    Claim,
    ClaimCreate,
    ClaimPriority,
    ClaimStatus,
    ClaimUpdate,
    CostBreakdown,
    CostBreakdownCreate,
    CostBreakdownInput,
    DamagePhoto,
    DamagePhotoCreate,
)
from ..storage import ClaimNotFoundError, ClaimStorage, get_claim_store
from ..utils.config import Settings, get_settings
from .images import (
    STORED_MIME_TYPE,
    ImageValidationError,
    process_image,
    read_upload,
    resolve_upload,
    save_image,
    validate_upload,
)

settings = get_settings()

# Now configure logging properly
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting AutoClaims server...")
    logger.info(f"Storage backend: {settings.storage_backend}")
    logger.info(f"Uploads directory: {settings.uploads_dir.resolve()}")
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    yield
    logger.info("Shutting down AutoClaims server...")


app = FastAPI(
    title="AutoClaims",
    description="Vehicle damage claim filing and adjuster review",
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Dependencies
# =============================================================================


def get_storage() -> ClaimStorage:
    """Claim storage used by the routes."""
    return get_claim_store()


def get_random() -> random.Random:
    """Random source for the mocked analysis and estimates."""
    return random.Random()


def get_analyzer(rng: random.Random = Depends(get_random)) -> DamageAnalyzer:
    return create_damage_analyzer(rng=rng)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request validation failures as 400 with a readable message."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    message = "; ".join(problems) or "Invalid request"
    logger.info(f"Rejected {request.method} {request.url.path}: {message}")
    return error_response(400, message)


# =============================================================================
# Health Check Endpoints
# =============================================================================


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "service": "AutoClaims",
        "status": "running",
    }


@app.get("/health")
async def health_check(
    storage: ClaimStorage = Depends(get_storage),
    config: Settings = Depends(get_settings),
):
    """Detailed health check endpoint."""
    try:
        claim_count = storage.count_claims()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return error_response(500, "Health check failed")

    return {
        "status": "healthy",
        "claims": claim_count,
        "config": {
            "storage_backend": config.storage_backend,
            "max_upload_size": config.max_upload_size,
            "max_files_per_upload": config.max_files_per_upload,
            "max_image_pixels": config.max_image_pixels,
            "image_bounds": list(config.image_bounds),
        },
    }


# =============================================================================
# Claim Endpoints
# =============================================================================


@app.get("/api/claims", response_model=List[Claim])
async def list_claims(
    status: Optional[ClaimStatus] = None,
    priority: Optional[ClaimPriority] = None,
    storage: ClaimStorage = Depends(get_storage),
):
    """List claims, newest first."""
    try:
        return storage.list_claims(status=status, priority=priority)
    except Exception as e:
        logger.error(f"Failed to fetch claims: {e}")
        return error_response(500, "Failed to fetch claims")


@app.get("/api/claims/{claim_id}", response_model=Claim)
async def get_claim(claim_id: int, storage: ClaimStorage = Depends(get_storage)):
    try:
        claim = storage.get_claim(claim_id)
    except Exception as e:
        logger.error(f"Failed to fetch claim {claim_id}: {e}")
        return error_response(500, "Failed to fetch claim")

    if claim is None:
        return error_response(404, "Claim not found")
    return claim


@app.post("/api/claims", response_model=Claim, status_code=201)
async def create_claim(claim_data: ClaimCreate, storage: ClaimStorage = Depends(get_storage)):
    """File a new claim. The claim number and submission date are assigned here."""
    try:
        claim = storage.create_claim(claim_data)
    except Exception as e:
        logger.error(f"Failed to create claim: {e}")
        return error_response(500, "Failed to create claim")

    logger.info(f"Claim {claim.claim_number} created (id={claim.id})")
    return claim


@app.patch("/api/claims/{claim_id}", response_model=Claim)
async def update_claim(
    claim_id: int,
    updates: ClaimUpdate,
    storage: ClaimStorage = Depends(get_storage),
):
    """Apply an adjuster's partial update to a claim."""
    changes = updates.to_updates()
    try:
        claim = storage.update_claim(claim_id, changes)
    except Exception as e:
        logger.error(f"Failed to update claim {claim_id}: {e}")
        return error_response(500, "Failed to update claim")

    if claim is None:
        return error_response(404, "Claim not found")

    logger.info(f"Claim {claim.claim_number} updated: {sorted(changes)}")
    return claim


# =============================================================================
# Damage Photo Endpoints
# =============================================================================


@app.get("/api/claims/{claim_id}/photos", response_model=List[DamagePhoto])
async def list_photos(claim_id: int, storage: ClaimStorage = Depends(get_storage)):
    try:
        if storage.get_claim(claim_id) is None:
            return error_response(404, "Claim not found")
        return storage.get_damage_photos(claim_id)
    except Exception as e:
        logger.error(f"Failed to fetch photos for claim {claim_id}: {e}")
        return error_response(500, "Failed to fetch photos")


@app.post("/api/claims/{claim_id}/photos", response_model=List[DamagePhoto], status_code=201)
def upload_photos(
    claim_id: int,
    photos: Optional[List[UploadFile]] = File(None),
    storage: ClaimStorage = Depends(get_storage),
    config: Settings = Depends(get_settings),
    analyzer: DamageAnalyzer = Depends(get_analyzer),
    rng: random.Random = Depends(get_random),
):
    """
    Upload damage photos for a claim.

    Every file is validated and resized before anything is stored. Each
    stored photo gets a mocked damage analysis, then the claim's cost
    breakdown and total estimate are regenerated from all of its photos.

    Plain def: image decoding and sqlite writes run in the threadpool.
    """
    try:
        if storage.get_claim(claim_id) is None:
            return error_response(404, "Claim not found")

        if not photos:
            return error_response(400, "No files uploaded")
        if len(photos) > config.max_files_per_upload:
            return error_response(
                400, f"Too many files. At most {config.max_files_per_upload} photos per upload."
            )

        # Declared type and size of every file, before reading any of them
        for upload in photos:
            validate_upload(upload.content_type, upload.size or 0, config.max_upload_size)

        processed = []
        for upload in photos:
            raw = read_upload(upload.file, config.max_upload_size)
            image = process_image(
                raw, config.image_bounds, config.jpeg_quality, config.max_image_pixels
            )
            processed.append((upload.filename or "upload", len(raw), image))

        uploaded = []
        for original_name, size, image in processed:
            filename = save_image(image, config.uploads_dir)
            assessment = analyzer.assess(filename, image.data)
            photo = storage.create_damage_photo(DamagePhotoCreate(
                claim_id=claim_id,
                filename=filename,
                original_name=original_name,
                mime_type=STORED_MIME_TYPE,
                size=size,
                damage_type=assessment.damage_type,
                severity=assessment.severity,
                ai_analysis=assessment.analysis,
            ))
            uploaded.append(photo)

        logger.info(f"Stored {len(uploaded)} photo(s) for claim {claim_id}")

        record_estimate(storage, claim_id, rng)
        return uploaded

    except ImageValidationError as e:
        return error_response(400, str(e))
    except ClaimNotFoundError:
        return error_response(404, "Claim not found")
    except Exception as e:
        logger.exception(f"Upload error for claim {claim_id}: {e}")
        return error_response(500, "Failed to upload photos")


def record_estimate(storage: ClaimStorage, claim_id: int, rng: random.Random) -> CostBreakdown:
    """
    Regenerate the cost breakdown for a claim and copy its total onto the claim.

    The existing breakdown is updated in place when there is one. The three
    writes are independent.
    """
    photos = storage.get_damage_photos(claim_id)
    estimate = generate_cost_estimate((p.ai_analysis for p in photos), rng)
    values = estimate.to_dict()

    if storage.get_cost_breakdown(claim_id) is not None:
        breakdown = storage.update_cost_breakdown(claim_id, values)
    else:
        breakdown = storage.create_cost_breakdown(CostBreakdownCreate(claim_id=claim_id, **values))

    storage.update_claim(claim_id, {
        "total_estimate": values["total_cost"],
        "estimation_confidence": values["confidence_level"],
    })
    logger.info(
        f"Claim {claim_id} estimate: ${estimate.total_cost} "
        f"({estimate.confidence_level}% confidence, {len(photos)} photos)"
    )
    return breakdown


@app.get("/api/photos/{photo_id}", response_model=DamagePhoto)
async def get_photo(photo_id: int, storage: ClaimStorage = Depends(get_storage)):
    try:
        photo = storage.get_damage_photo(photo_id)
    except Exception as e:
        logger.error(f"Failed to fetch photo {photo_id}: {e}")
        return error_response(500, "Failed to fetch photo")

    if photo is None:
        return error_response(404, "Photo not found")
    return photo


@app.delete("/api/photos/{photo_id}", status_code=204)
async def delete_photo(
    photo_id: int,
    storage: ClaimStorage = Depends(get_storage),
    config: Settings = Depends(get_settings),
):
    """Delete a photo record and its stored file."""
    try:
        photo = storage.get_damage_photo(photo_id)
        if photo is None or not storage.delete_damage_photo(photo_id):
            return error_response(404, "Photo not found")

        path = resolve_upload(config.uploads_dir, photo.filename)
        if path is not None:
            path.unlink(missing_ok=True)
    except Exception as e:
        logger.error(f"Failed to delete photo {photo_id}: {e}")
        return error_response(500, "Failed to delete photo")

    logger.info(f"Photo {photo_id} ({photo.filename}) deleted from claim {photo.claim_id}")
    return Response(status_code=204)


# =============================================================================
# Cost Breakdown Endpoints
# =============================================================================


@app.get("/api/claims/{claim_id}/cost-breakdown", response_model=CostBreakdown)
async def get_cost_breakdown(claim_id: int, storage: ClaimStorage = Depends(get_storage)):
    try:
        breakdown = storage.get_cost_breakdown(claim_id)
    except Exception as e:
        logger.error(f"Failed to fetch cost breakdown for claim {claim_id}: {e}")
        return error_response(500, "Failed to fetch cost breakdown")

    if breakdown is None:
        return error_response(404, "Cost breakdown not found")
    return breakdown


@app.post("/api/claims/{claim_id}/cost-breakdown", response_model=CostBreakdown, status_code=201)
async def create_cost_breakdown(
    claim_id: int,
    breakdown_data: CostBreakdownInput,
    storage: ClaimStorage = Depends(get_storage),
):
    """Attach a manually entered cost breakdown to a claim."""
    try:
        breakdown = storage.create_cost_breakdown(
            CostBreakdownCreate(claim_id=claim_id, **breakdown_data.model_dump())
        )
    except ClaimNotFoundError:
        return error_response(404, "Claim not found")
    except Exception as e:
        logger.error(f"Failed to create cost breakdown for claim {claim_id}: {e}")
        return error_response(500, "Failed to create cost breakdown")

    logger.info(f"Cost breakdown {breakdown.id} created for claim {claim_id}")
    return breakdown


@app.patch("/api/claims/{claim_id}/cost-breakdown", response_model=CostBreakdown)
async def update_cost_breakdown(
    claim_id: int,
    updates: CostBreakdownInput,
    storage: ClaimStorage = Depends(get_storage),
):
    try:
        breakdown = storage.update_cost_breakdown(claim_id, updates.to_updates())
    except Exception as e:
        logger.error(f"Failed to update cost breakdown for claim {claim_id}: {e}")
        return error_response(500, "Failed to update cost breakdown")

    if breakdown is None:
        return error_response(404, "Cost breakdown not found")
    return breakdown


# =============================================================================
# Stored Files
# =============================================================================


@app.get("/api/files/{filename}")
async def get_file(filename: str, config: Settings = Depends(get_settings)):
    """Serve a stored damage photo."""
    try:
        path = resolve_upload(config.uploads_dir, filename)
    except Exception as e:
        logger.error(f"Failed to look up file {filename}: {e}")
        return error_response(500, "Failed to fetch file")

    if path is None:
        return error_response(404, "File not found")
    return FileResponse(path, media_type=STORED_MIME_TYPE)


# =============================================================================
# Main Entry Point
# =============================================================================


def main():
    """Run the FastAPI server."""
    import uvicorn

    uvicorn.run(
        "autoclaims.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
