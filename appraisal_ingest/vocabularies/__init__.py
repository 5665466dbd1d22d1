"""Per-format vocabulary YAML files (synonym tables and regex batteries)."""
