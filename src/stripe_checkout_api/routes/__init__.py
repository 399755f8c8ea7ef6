"""API routes package.

- callbacks: Stripe webhook and create-intent callback endpoint

All routers are registered in main.py with /api prefix.
"""

from stripe_checkout_api.routes.callbacks import router as callbacks_router

__all__ = ["callbacks_router"]
