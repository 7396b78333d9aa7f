"""Kakebo Copilot HTTP API (FastAPI)."""
