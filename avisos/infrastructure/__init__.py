"""Infrastructure adapters: database, transports and realtime delivery."""
