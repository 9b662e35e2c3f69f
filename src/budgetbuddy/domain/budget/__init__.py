"""Budget bounded context: the YNAB side of a sync."""
