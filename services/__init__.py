"""Process-local services backing the fit API."""
