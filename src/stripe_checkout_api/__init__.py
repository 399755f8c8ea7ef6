"""HTTP surface for the Stripe Checkout provider."""
