"""Deals marketplace admin API: retailer and deal review workflow."""
