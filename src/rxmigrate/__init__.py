"""rxmigrate - convert async/await signal-store methods to rxMethod pipelines."""

__version__ = "0.1.0"
