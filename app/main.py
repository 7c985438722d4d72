"""Refund Payment File Service - Main Application."""

from fastapi import FastAPI

from app.api.routes import payment_files
from app.core.config import settings
from app.core.logging import setup_logging

# Configure logging before anything else
logger = setup_logging(settings.log_level)

# -- OpenAPI tag metadata for Swagger grouping --
tags_metadata = [
    {
        "name": "Health",
        "description": "Service health and readiness checks.",
    },
    {
        "name": "Payment files",
        "description": (
            "Validate refund candidates and turn them into SEPA credit "
            "transfer files (ISO 20022 pain.001.001.03) for the bank."
        ),
    },
]


app = FastAPI(
    title="Refund Payment File Service",
    description=(
        "## SEPA Refund Payout API\n\n"
        "Turns reconciled cashless-card refunds into a pain.001.001.03 "
        "credit transfer file the bank can import.\n\n"
        "### Pipeline\n"
        "1. **Validate** every record (Belgian IBAN + mod-97, amount, names). "
        "One bad record rejects the whole batch.\n"
        "2. **Reconcile**: drop duplicates sharing a card identifier, merge "
        "refunds going to the same IBAN.\n"
        "3. **Encode** the group header, payment information and one credit "
        "transfer per payee.\n\n"
        "### Quick Start\n"
        "```bash\n"
        "curl -X POST /api/v1/payment-files/generate/xml "
        '-H "Content-Type: application/json" '
        "-d '{\"records\": [{\"id\": 1, \"first_name\": \"John\", "
        '"last_name": "Doe", "account": "BE18001778394865", '
        '"matched_card": "CARD001", "amount_recharged": 28.00}]}\' '
        "-o refunds.xml\n"
        "```\n"
    ),
    version="1.0.0",
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(
    payment_files.router, prefix="/api/v1/payment-files", tags=["Payment files"]
)

logger.info("Refund payment file API ready - routes registered")


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint.

    Returns a simple JSON object confirming the service is running.
    Useful for load balancers and monitoring systems.
    """
    return {"status": "healthy", "service": "refund-payment-file"}
