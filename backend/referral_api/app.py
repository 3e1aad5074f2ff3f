"""ASGI entrypoint.

Usage:
    uvicorn referral_api.app:app --reload
"""
import logging

from referral_api.main import create_app

app = create_app()
logging.getLogger("referral_api.app").info("[startup] Application created successfully")
