"""
Core utilities and configuration for the Universe bulk event sync.

This package provides foundational components used throughout the sync pipeline:

Modules:
    config: Application configuration and environment variable management
    exceptions: Custom exception hierarchy for error handling
    idempotency: Client mutation id generation for remote mutations
    logging: Logging configuration (console + daily append-only file)

Usage:
    from core.config import settings
    from core.exceptions import TransportError, RemoteApiError
    from core.idempotency import generate_client_mutation_id
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Tag a remote mutation
    mutation_id = generate_client_mutation_id("event-create", "rec123")
"""

__all__ = [
    "config",
    "exceptions",
    "idempotency",
    "logging",
]
