"""Inbound adapters exposing the notification engine."""
