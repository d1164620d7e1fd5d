"""In-memory key-value cache with TTLs, key dependencies, an HTTP API and a TCP listener."""

__version__ = "0.1.0"
__all__ = ["cache", "errors", "executor", "http_api", "main", "resp_api", "values"]