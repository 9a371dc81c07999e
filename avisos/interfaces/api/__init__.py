"""FastAPI surface of the notification engine."""
