"""Domain entities and their persistence tables."""
