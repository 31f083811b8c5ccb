"""Main CLI entry point for cargo-dep."""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .errors import CargoDepError
from .formatters import FORMATS, OutputFormatter
from .graph_builder import DependencyGraphBuilder
from .metadata import MetadataProvider
from .selection import mark_included, select_ignored, select_roots

logger = logging.getLogger(__name__)

# Cargo passes the subcommand name through when run as `cargo dep`
CARGO_SUBCOMMAND = 'dep'

LOG_LEVELS = {
    'TRACE': logging.DEBUG,
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'ERROR': logging.ERROR,
}


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        level = LOG_LEVELS.get(log_level.upper(), logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='cargo-dep',
        description='Cargo dependency graph.'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    source = parser.add_mutually_exclusive_group()
    source.add_argument('--manifest-path', metavar='PATH',
                        help='Path to Cargo.toml.')
    source.add_argument('--metadata-file', metavar='PATH',
                        help='Read `cargo metadata` JSON from a file, URL, or - for stdin '
                             'instead of running cargo.')

    parser.add_argument('-p', '--package', metavar='SPEC', action='append', default=[],
                        help='Package name to include (default all workspace members). '
                             'May be repeated.')
    parser.add_argument('--exclude', metavar='SPEC', action='append', default=[],
                        help='Package name to exclude. May be repeated.')
    parser.add_argument('--format', dest='output_format', default='dot', choices=FORMATS,
                        help='Output format (dot, list, tree, sbom). Default: dot')
    parser.add_argument('-o', '--output', default='-',
                        help='Output file (default: stdout, use - for stdout)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('--loglevel', choices=list(LOG_LEVELS),
                        help='Set log level')
    return parser


def generate_graph(args: argparse.Namespace, command_line: Optional[str] = None) -> str:
    """Load metadata, build and select the graph, and return the rendered output."""
    provider = MetadataProvider(
        manifest_path=args.manifest_path,
        metadata_file=args.metadata_file
    )
    metadata = provider.load()

    packages = DependencyGraphBuilder(metadata).build()

    ignore_set = select_ignored(packages, args.exclude)
    root_set = select_roots(packages, args.package)
    mark_included(packages, root_set, ignore_set)

    return OutputFormatter.format(args.output_format, packages, root_set, ignore_set, command_line)


def error_lines(error: BaseException) -> List[str]:
    """Render an error and its chain of causes, innermost cause last."""
    lines = [f"Error: {error}"]
    cause = error.__cause__
    while cause is not None:
        lines.append(f"Caused by: {cause}")
        cause = cause.__cause__
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] == CARGO_SUBCOMMAND:
        argv = argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.loglevel)

    # Nothing is written until the whole graph has been rendered
    try:
        output = generate_graph(args, command_line=' '.join(argv))
    except CargoDepError as e:
        logger.debug("Graph generation failed", exc_info=True)
        for line in error_lines(e):
            print(line, file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.output == '-':
            sys.stdout.write(output)
        else:
            with open(args.output, 'w') as f:
                f.write(output)
            logger.info(f"Output written to: {args.output}")
    except OSError as e:
        logger.error(f"Error writing output: {e}")
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
