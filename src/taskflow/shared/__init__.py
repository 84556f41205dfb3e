"""Cross-cutting errors and HTTP response helpers."""
