"""Core domain layer: models, exceptions and the audit recorder."""
