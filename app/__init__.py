"""Notification dispatcher for a legal practice management platform."""
