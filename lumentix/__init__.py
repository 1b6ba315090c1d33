"""Lumentix ticket issuance and transfer service."""
