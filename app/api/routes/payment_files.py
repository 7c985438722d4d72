"""Payment file endpoints.

Thin host boundary around ``PaymentFileEncoder``: the debtor identity comes
from server settings, the refund candidates and optional generation options
from the request body. Nothing is persisted; the caller gets the file back.
"""

from fastapi import APIRouter, Depends, HTTPException, Response

from app.core.config import Settings, settings
from app.core.exceptions import ConfigurationError
from app.core.logging import get_logger
from app.schemas.payment_file import (
    DryRunReport,
    GenerateRequest,
    GenerationResult,
)
from app.services.payment_file.encoder import PaymentFileEncoder

logger = get_logger(__name__)

router = APIRouter()


def get_settings() -> Settings:
    """Dependency that provides the application settings."""
    return settings


def _build_encoder(request: GenerateRequest, config: Settings) -> PaymentFileEncoder:
    overrides = {}
    if request.options:
        overrides = request.options.model_dump(exclude_unset=True)
    try:
        return PaymentFileEncoder(
            config.debtor_configuration(),
            config.generation_options(**overrides),
        )
    except ConfigurationError as exc:
        logger.error("Debtor configuration rejected: %s", exc.message)
        raise HTTPException(
            status_code=503,
            detail=f"Payment file generation is misconfigured: {exc.message}",
        )


def _select_records(request: GenerateRequest, config: Settings) -> list:
    """Apply the record limit, then drop flagged records unless included."""
    limit = request.max_refunds or config.max_refunds_per_file
    records = request.records[:limit]
    if len(records) < len(request.records):
        logger.info(
            "Limited refunds to process: %d of %d (max: %d)",
            len(records),
            len(request.records),
            limit,
        )

    if not request.include_warnings:
        selected = [r for r in records if r.validation_status != "warning"]
        if len(selected) < len(records):
            logger.info(
                "Filtered out %d refunds with warnings", len(records) - len(selected)
            )
        if records and not selected:
            raise HTTPException(
                status_code=400,
                detail="No refunds available after applying processing filters",
            )
        records = selected
    return records


@router.post("/validate", response_model=DryRunReport)
def validate_refunds(
    request: GenerateRequest,
    config: Settings = Depends(get_settings),
) -> DryRunReport:
    """Dry run: validate the selected refunds and report their totals."""
    encoder = _build_encoder(request, config)
    return encoder.dry_run(_select_records(request, config))


@router.post("/generate", response_model=GenerationResult)
def generate_payment_file(
    request: GenerateRequest,
    config: Settings = Depends(get_settings),
) -> GenerationResult:
    """Generate the pain.001 file and return it inside a JSON result.

    A failed generation is still a 200: ``success`` is false and ``errors``
    lists every problem found.
    """
    encoder = _build_encoder(request, config)
    return encoder.generate(_select_records(request, config))


@router.post("/generate/xml")
def download_payment_file(
    request: GenerateRequest,
    config: Settings = Depends(get_settings),
) -> Response:
    """Generate the pain.001 file and return it as an XML attachment."""
    encoder = _build_encoder(request, config)
    result = encoder.generate(_select_records(request, config))

    if not result.success:
        raise HTTPException(
            status_code=422,
            detail={"errors": result.errors, "warnings": result.warnings},
        )

    filename = result.download_filename()
    logger.info(
        "Serving payment file %s: transactions=%d",
        filename,
        result.transaction_count,
    )
    return Response(
        content=result.xml_content,
        media_type="application/xml",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Message-Id": result.message_id,
            "X-Transaction-Count": str(result.transaction_count),
        },
    )
