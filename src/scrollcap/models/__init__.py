"""Pydantic models shared by the browser, job, and API layers."""
