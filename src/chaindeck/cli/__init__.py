"""Command-line interface for ChainDeck."""
