#!/usr/bin/env python3
"""
Command-Line Interface for the Keystroke Histogram

Usage:
    python -m keystroke_histogram                      # Run with default config
    python -m keystroke_histogram -c config.yaml       # Run with custom config
    python -m keystroke_histogram --input notes.txt    # Type a file, print the report
    python -m keystroke_histogram --api                # Run with REST API server
"""

import argparse
import os
import sys

from .controller import HistogramController
from .models import HistogramConfig, HistogramError


def type_file(master: HistogramController, path: str):
    """Type a file's content through the character source."""
    if path == "-":
        for line in sys.stdin:
            master.source.type_text(line)
        return

    with open(path, "r", encoding="latin-1") as f:
        for line in f:
            master.source.type_text(line)


def main():
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description="Keystroke Word Histogram",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m keystroke_histogram                          # Run with default config
  python -m keystroke_histogram --input notes.txt        # Histogram of a file
  cat notes.txt | python -m keystroke_histogram --input -
  python -m keystroke_histogram --api --api-port 8000    # REST API on port 8000
        """
    )
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to config file (default: config.yaml, defaults used if missing)",
    )
    parser.add_argument(
        "--input",
        default=None,
        help="Type this file ('-' for stdin) as keystrokes, print the report and exit",
    )
    parser.add_argument(
        "--api",
        action="store_true",
        help="Run with REST API server",
    )
    parser.add_argument(
        "--api-host",
        default=None,
        help="API server host (default: from config or 0.0.0.0)",
    )
    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        help="API server port (default: from config or 8080)",
    )

    args = parser.parse_args()

    # Load config
    if os.path.exists(args.config):
        try:
            config = HistogramConfig.from_yaml(args.config)
        except Exception as e:
            print(f"Error loading config: {e}")
            sys.exit(1)
    else:
        config = HistogramConfig()

    master = HistogramController(config)

    # Handle --input
    if args.input:
        try:
            master.initialize()
            type_file(master, args.input)
            # Flush a trailing word not followed by whitespace
            master.source.type_text("\n")
            sys.stdout.write(master.endpoint.read_all().decode("latin-1"))
        except (HistogramError, OSError) as e:
            print(f"Error: {e}")
            sys.exit(1)
        finally:
            master.teardown()
        sys.exit(0)

    # Handle --api or config.api.enabled
    if args.api or config.api.enabled:
        api_host = args.api_host or config.api.host
        api_port = args.api_port or config.api.port

        print("\n" + "=" * 50)
        print("KEYSTROKE HISTOGRAM + REST API")
        print("=" * 50)
        print(f"API Host:        {api_host}")
        print(f"API Port:        {api_port}")
        print(f"Source:          {config.source.type.value}")
        print(f"Buckets:         {config.buckets_nb}")
        print("=" * 50)

        ok = master.run_with_api(api_host=api_host, api_port=api_port)
        sys.exit(0 if ok else 1)

    # Run main loop (no API)
    if not master.run():
        sys.exit(1)


if __name__ == "__main__":
    main()
