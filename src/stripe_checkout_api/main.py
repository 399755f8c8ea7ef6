"""FastAPI application for the Stripe Checkout provider.

Exposes:
- POST /api/payment-providers/stripe-checkout/callback (webhooks, create intent)
- GET /api/ping
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from mangum import Mangum

from stripe_checkout import __version__
from stripe_checkout.utils.logging import configure_logging, get_logger
from stripe_checkout_api.exceptions import register_exception_handlers
from stripe_checkout_api.middleware.correlation import CorrelationIdMiddleware
from stripe_checkout_api.routes.callbacks import router as callbacks_router

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Stripe Checkout Provider API",
    description="Stripe webhook reconciliation and payment intent callbacks",
    version=__version__,
)

app.add_middleware(CorrelationIdMiddleware)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

# Include routers under /api prefix
app.include_router(callbacks_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Health check endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "stripe-checkout-provider",
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "stripe_checkout_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
