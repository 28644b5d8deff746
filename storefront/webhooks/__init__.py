"""Stripe webhook inbound system.

Each webhook is signature-verified against the raw body, deduplicated by
checkout session, applied to inventory, and acknowledged with 200.
"""
