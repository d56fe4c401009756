"""Storefront order lifecycle and payment settlement service."""
