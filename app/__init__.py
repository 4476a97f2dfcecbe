"""Classroom analytics service: declarative query compiler behind a FastAPI API."""
