"""YAML configuration and config-declared record types."""
