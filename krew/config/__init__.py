"""Plugin manifest schemas and YAML parsing."""
