"""Installer configuration."""
