#!/usr/bin/env python3
"""
Jellyfin → Discord Rich Presence with ImgBB caching
Entry point for the jellyrpc package.
"""
import argparse
import logging
import sys
from typing import List, Optional

from jellyrpc import __version__
from jellyrpc.config import get_config_path, load_config
from jellyrpc.core import main_loop
from jellyrpc.errors import ConfigError
from jellyrpc.logger import setup_logger
from jellyrpc.validation import validate_configuration

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="jellyrpc", description="Display what you're watching on Jellyfin as Discord Rich Presence.")
    parser.add_argument("-c", "--config", default=str(get_config_path()), help="path to config.yaml")
    parser.add_argument("-k", "--jellyfin-key-file", help="file holding the Jellyfin api key")
    parser.add_argument("--imgbb-key-file", help="file holding the ImgBB api token")
    parser.add_argument("-u", "--urls-location", help="path to the ImgBB URL cache (urls.json)")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default="jellyrpc.log", help="log file path, empty to disable")
    parser.add_argument("--skip-validation", action="store_true", help="don't check the config before starting")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)

def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    logger = setup_logger(log_file=args.log_file or None, level=getattr(logging, args.log_level))

    try:
        settings = load_config(args.config, args.jellyfin_key_file, args.imgbb_key_file)
        if args.urls_location:
            settings.general["urls_location"] = args.urls_location

        if not args.skip_validation and not validate_configuration(settings):
            sys.exit(1)

        main_loop(settings)

    except FileNotFoundError as e:
        logger.error(f"Error: {e}")
        logger.error("Please copy 'config.yaml.example' to your config path and configure it.")
        sys.exit(1)
    except ConfigError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"FATAL ERROR: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
