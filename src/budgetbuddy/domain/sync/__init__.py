"""Sync bounded context: sessions and the transactions reviewed in them."""
