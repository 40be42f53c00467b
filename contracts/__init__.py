"""Contracts: leases, management mandates and their generated documents."""
