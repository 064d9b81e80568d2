"""HTTP adapter for the ritual engine (FastAPI)."""
