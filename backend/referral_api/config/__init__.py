"""Application configuration modules.

- logging: logging and Sentry setup
- middleware: CORS and request-id middleware
- routes: router attachment and health checks
"""
