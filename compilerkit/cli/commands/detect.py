"""
Detect command - find and rank installed compilers.
"""

import json
import logging

from compilerkit.cli.utils import (
    get_detection_cache,
    load_config_from_args,
    print_detection_result,
)
from compilerkit.detection.detector import detect_compilers

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the detect command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 if detection failed)
    """
    config = load_config_from_args(args)
    detection = config.detection

    use_cache = detection.use_cache and not args.no_cache
    cache = get_detection_cache(config) if use_cache else None

    result = detect_compilers(
        deep_scan=args.deep or detection.deep_scan,
        cache=cache,
        refresh=args.refresh,
        max_workers=detection.max_workers,
        deep_scan_max_depth=detection.deep_scan_max_depth,
    )

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_detection_result(result)

    return 0 if result.success else 1
