"""
Cache command - show or clear the detection cache.
"""

import logging

from compilerkit.cli.utils import get_detection_cache, load_config_from_args, safe_print

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the cache command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    cache_command = getattr(args, "cache_command", None)
    if not cache_command:
        logger.error("No cache sub-command specified (use 'show' or 'clear')")
        return 1

    cache = get_detection_cache(load_config_from_args(args))

    if cache_command == "show":
        info = cache.info()
        if info is None:
            safe_print(f"No detection cache at {cache.cache_file}")
            return 0
        safe_print(f"Cache file:   {info['path']}")
        safe_print(f"Format:       {info['cache_version']}")
        safe_print(f"Written at:   {info['cached_at']}")
        safe_print(f"Compilers:    {info['compilers']}")
        return 0

    if cache_command == "clear":
        if cache.clear():
            safe_print(f"✓ Removed {cache.cache_file}")
        else:
            safe_print(f"No detection cache at {cache.cache_file}")
        return 0

    logger.error(f"Unknown cache command: {cache_command}")
    return 1
