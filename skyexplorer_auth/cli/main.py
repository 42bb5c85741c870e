"""
SkyExplorer Auth CLI Entry Point

1. Initializes logging from configuration.
2. Dispatches to the management commands (init, add-user, serve, ...).
"""

import sys

from skyexplorer_auth.auth.errors import StorageError
from skyexplorer_auth.cli.cli_tools import handle_user_management
from skyexplorer_auth.utils.logging import setup_logging


def main():
    logger = setup_logging()

    try:
        sys.exit(handle_user_management(sys.argv[1:]))
    except (StorageError, ValueError) as e:
        logger.error(f"❌ Failed to execute management command: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
