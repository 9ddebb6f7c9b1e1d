"""Parsing, formatting, pagination and numbering helpers."""
