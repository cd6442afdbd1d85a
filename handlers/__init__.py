"""Fixture handlers for the storefront API."""
