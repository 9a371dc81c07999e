"""Notification delivery service for the school-management backend."""
