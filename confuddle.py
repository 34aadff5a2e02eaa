#!/usr/bin/env python3
"""
Confuddlement - Confluence space export and document assistant - Main CLI Entry Point

Exports Confluence spaces to Markdown files, resuming across runs, and lets a
local Ollama model summarise single files or answer questions over the files
that match a search term.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from config_loader import ConfigLoader, ExportSettings, get_nested
from confluence_client import ConfluenceClient, ConfluenceError
from fetchers import StateError
from logger import log_config, log_section, setup_logging
from orchestrator import IngestionPipeline
from assistant import CorpusSearcher, DocumentAssistant, LlmError, OllamaClient, DEFAULT_LINE_RANGE

# Version
__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='confuddle',
        description="Export Confluence spaces to Markdown and query them with a local LLM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export the configured spaces
  confuddle --spaces "ENG,HR"

  # Summarise an exported file (pick one interactively)
  confuddle --summarise

  # Ask a question about every file mentioning a term
  confuddle -s kubernetes -q "How do we deploy?" -r 10

  # Verbose logging
  confuddle --spaces ENG -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration YAML file, used when present (default: config.yaml)'
    )

    parser.add_argument(
        '--env-file',
        type=str,
        default='.env',
        help='Path to a .env file, used when present (default: .env)'
    )

    parser.add_argument(
        '--spaces',
        type=str,
        help='Comma-separated space keys to export (e.g., ENG,HR)'
    )

    parser.add_argument(
        '--dump-dir',
        type=str,
        help='Directory receiving the Markdown files and state.json'
    )

    parser.add_argument(
        '--skip-fetched',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Skip documents already recorded in state.json'
    )

    parser.add_argument(
        '--delete-previous-dump',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Delete the dump directory before exporting'
    )

    parser.add_argument(
        '--summarise',
        nargs='?',
        const='',
        default=None,
        metavar='FILE',
        help='Summarise an exported file instead of exporting (choose interactively if FILE is omitted)'
    )

    parser.add_argument(
        '-q', '--query',
        type=str,
        help='Question to ask about the documents matching the search term'
    )

    parser.add_argument(
        '-s', '--search',
        type=str,
        default='',
        help='Search term selecting the documents passed to the query'
    )

    parser.add_argument(
        '-r', '--range',
        dest='line_range',
        type=int,
        default=DEFAULT_LINE_RANGE,
        help=f'Number of leading lines of each file searched for the query (default: {DEFAULT_LINE_RANGE})'
    )

    parser.add_argument(
        '--report-path',
        type=str,
        help='Write a JSON export report to this path'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def load_configuration(args: argparse.Namespace) -> dict:
    """Combine YAML file, .env/environment and CLI arguments (later sources win)."""
    config = {}
    if args.config and os.path.exists(args.config):
        config = ConfigLoader.load(args.config)

    config = ConfigLoader.merge(config, ConfigLoader.from_env(args.env_file))
    return ConfigLoader.merge_with_args(config, args)


def run_export(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the export pipeline."""
    settings = ExportSettings.from_config(config)
    logger.info(f"Spaces: {', '.join(settings.spaces)}")

    client = ConfluenceClient.from_config(config)
    pipeline = IngestionPipeline(settings, client)

    try:
        report = pipeline.run()
    except ConfluenceError as e:
        logger.error(f"Export aborted: {str(e)}")
        return 1
    except (StateError, OSError) as e:
        logger.error(f"Export aborted: {str(e)}", exc_info=True)
        return 1

    print("\n" + report.format_console_report())

    report_path = args.report_path or get_nested(config, 'export.report_path')
    if report_path:
        report.export_json_report(report_path)

    if report.has_failures:
        logger.warning(f"Export completed with {len(report.failures)} failed documents")
        return 1

    logger.info("Export completed successfully")
    return 0


def select_document(searcher: CorpusSearcher) -> Optional[Path]:
    """Print the exported files and ask the user to pick one by number."""
    documents = searcher.list_documents()
    if not documents:
        print("No exported files to summarise.", file=sys.stderr)
        return None

    print("Select a file to summarise:")
    for index, path in enumerate(documents):
        print(f"{index}: {path.name}")

    answer = input("Enter the number of the file to summarise: ").strip()
    try:
        selection = int(answer)
    except ValueError:
        print(f"ERROR: Not a number: {answer}", file=sys.stderr)
        return None

    if not 0 <= selection < len(documents):
        print(f"ERROR: No file numbered {selection}", file=sys.stderr)
        return None

    return documents[selection]


def run_assistant(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Summarise one file or answer a query over the exported corpus."""
    searcher = CorpusSearcher(get_nested(config, 'export.dump_dir'))
    assistant = DocumentAssistant(searcher, OllamaClient.from_config(config))

    def print_token(token: str) -> None:
        print(token, end='', flush=True)

    try:
        if args.summarise is not None:
            if args.summarise:
                path = Path(args.summarise)
                if not path.exists():
                    path = searcher.dump_dir / args.summarise
            else:
                path = select_document(searcher)
                if path is None:
                    return 1
            assistant.summarise(path, on_token=print_token)
        else:
            answer = assistant.query(args.search, args.query, args.line_range, on_token=print_token)
            if answer is None:
                print("No files matched the search term.")
                return 0
    except LlmError as e:
        logger.error(f"LLM request failed: {str(e)}")
        return 1
    except OSError as e:
        logger.error(f"Cannot read exported files: {str(e)}")
        return 1

    print()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    argv = sys.argv[1:] if argv is None else argv

    # print usage if no arguments are provided
    if not argv:
        parser.print_usage()
        return 0

    args = parser.parse_args(argv)
    assistant_mode = args.summarise is not None or bool(args.query)

    try:
        setup_logging(verbosity=args.verbose)
        logger = logging.getLogger('confuddlement.cli')

        # Load configuration
        config = load_configuration(args)
        ConfigLoader.validate(config, require_remote=not assistant_mode)

        # Reconfigure logging with config file settings
        logging_config = config.get('logging', {})
        setup_logging(
            verbosity=args.verbose,
            log_file=logging_config.get('file'),
            level='DEBUG' if logging_config.get('debug') else logging_config.get('level')
        )

        log_section("Confuddlement")
        logger.info(f"Version: {__version__}")
        log_config(config)

        if assistant_mode:
            return run_assistant(config, args, logger)
        return run_export(config, args, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
