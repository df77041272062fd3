"""
Helpdesk Shared Library
=======================

Common utilities, configurations, and abstractions used by the helpdesk service.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - auth: JWT authentication and role-based authorization
    - database: Async SQLAlchemy engine and sessions
    - llm: LLM provider abstraction (Gemini)
    - models: Shared Pydantic response models

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "Helpdesk Team"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
