"""HTTP surface for scrollcap (FastAPI)."""
