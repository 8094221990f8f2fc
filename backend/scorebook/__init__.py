"""Volleyball scorebook: ledger-backed match scoring service."""
