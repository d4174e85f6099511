"""Core configuration, errors, logging and business rules."""
