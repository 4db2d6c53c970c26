"""File persistence helpers."""
