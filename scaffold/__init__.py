"""Symfony Docker scaffold — interactive project installer."""

__version__ = "0.1.0"
