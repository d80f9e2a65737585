"""Chatmeter - chat client core with persisted sessions and per-message cost tracking."""
