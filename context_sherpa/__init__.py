"""Rule-driven code scanning for agents, backed by ast-grep."""

__version__ = "1.0.0"
