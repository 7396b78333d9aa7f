"""Route registration for the Kakebo Copilot API."""

from fastapi import FastAPI

from .chat import router as chat_router


def register_routes(app: FastAPI):
    app.include_router(chat_router)
