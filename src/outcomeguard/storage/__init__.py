"""DuckDB persistence: schema, combinations table, period results."""
