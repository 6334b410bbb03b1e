"""Application package for the NetGraph engine."""
