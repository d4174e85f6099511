"""Record models and enum definitions."""
