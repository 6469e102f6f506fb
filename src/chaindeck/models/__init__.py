"""Pydantic models for ChainDeck plans, ledgers and artifacts."""
