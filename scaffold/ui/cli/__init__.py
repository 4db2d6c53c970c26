"""CLI sub-command groups and the click-based operator."""
