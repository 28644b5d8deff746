"""Storefront backend: admin inventory, Stripe checkout, order fulfillment."""
