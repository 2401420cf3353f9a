"""Core services: incident lifecycle, accounts and aggregation."""
