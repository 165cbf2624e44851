"""devspace - ephemeral containerized editor sessions for git repositories."""

__version__ = "0.1.0"
