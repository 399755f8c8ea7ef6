"""Stripe Checkout payment provider.

Reconciles Stripe webhook notifications to canonical transaction states and
exposes capture, refund and cancel operations for an external order system.
"""

__version__ = "0.1.0"
