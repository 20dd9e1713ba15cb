"""HTTP surface for the fit diagnostic service."""
