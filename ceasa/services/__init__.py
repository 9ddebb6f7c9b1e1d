"""Workflow services. Every operation receives the session and tenant explicitly."""
