"""
Shared module for common utilities used by the realtime client and the CLI.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging, token masking

- shared.utils: Utilities
  - exceptions.py: Realtime client exception hierarchy

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.logging import get_logger, mask_token
    from shared.utils.exceptions import InvalidTransitionError
"""
