"""Core domain: models, configuration, services, use cases."""
