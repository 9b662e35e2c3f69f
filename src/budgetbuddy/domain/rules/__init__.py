"""Rules bounded context: pattern-to-category mappings."""
