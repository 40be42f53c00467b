"""Receipts: rent receipts, owner reversals and account statements."""
