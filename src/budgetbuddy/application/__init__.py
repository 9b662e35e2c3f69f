"""Application layer: the sync review flow."""
