"""Building blocks for database schema migrations driven by annotated SQL files."""

__version__ = "0.1.0"
__all__ = ["controller", "dialect", "dialectquery", "lock", "log", "resolve", "sqlparser"]