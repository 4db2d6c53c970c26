"""Channel-independent services used by the install pipeline."""
