#!/usr/bin/env python3
"""
Convert vendor OVAL vulnerability feeds to a CVE-indexed JSON corpus.

This tool downloads the OVAL feeds published by Red Hat and Oracle and
rewrites them as one JSON file per CVE, grouped by OS release.

Usage:
    python convert_oval.py redhat --vuln-dir vuln-data/

The tool replaces <vuln-dir>/<source>/ wholesale on every run. Runs against
the same source must not overlap.
"""
import argparse
import sys

from ovaldict.config import Config, setup_logger
from ovaldict.errors import ConvertError
from ovaldict.fetcher import DEFAULT_TIMEOUT, Fetcher
from ovaldict.pipeline import run_conversion
from ovaldict.sources import SOURCES, SUPPORTED_REDHAT_VERSIONS, RedHatSource


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser"""
    parser = argparse.ArgumentParser(
        description='OVAL to CVE-indexed JSON Converter',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Convert the Red Hat feeds
    python convert_oval.py redhat --vuln-dir vuln-data/

    # Convert only RHEL 7 and 8, through a proxy
    python convert_oval.py redhat --versions 7 8 --http-proxy http://proxy:3128

    # Convert the Oracle feed with schema validation
    python convert_oval.py oracle --validate
"""
    )

    parser.add_argument(
        'source',
        choices=sorted(SOURCES),
        help='Feed to convert'
    )
    parser.add_argument(
        '--vuln-dir',
        dest='vuln_dir',
        default='vuln-data',
        help='Root directory of the converted corpus (default: vuln-data/)'
    )
    parser.add_argument(
        '--http-proxy',
        dest='http_proxy',
        help='HTTP(S) proxy used to fetch feeds'
    )
    parser.add_argument(
        '--versions',
        nargs='+',
        default=list(SUPPORTED_REDHAT_VERSIONS),
        help='Red Hat releases to fetch (default: %(default)s)'
    )
    parser.add_argument(
        '--timeout',
        type=int,
        default=DEFAULT_TIMEOUT,
        help='Download timeout in seconds (default: %(default)s)'
    )
    parser.add_argument(
        '--validate',
        action='store_true',
        help='Validate output against the record schema (requires jsonschema)'
    )
    parser.add_argument(
        '--log-to-file',
        action='store_true',
        help='Also write logs to --log-dir'
    )
    parser.add_argument(
        '--log-dir',
        default='log',
        help='Directory for log files (default: log/)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Write logs as JSON lines'
    )
    parser.add_argument(
        '-d', '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    return parser


def main(argv=None):
    """
    Convert one OVAL source.
    """
    args = build_parser().parse_args(argv)

    config = Config(
        vuln_dir=args.vuln_dir,
        http_proxy=args.http_proxy,
        debug=args.debug,
        log_to_file=args.log_to_file,
        log_dir=args.log_dir,
        log_json=args.log_json,
        validate=args.validate,
        timeout=args.timeout,
    )
    setup_logger(config)

    fetcher = Fetcher(http_proxy=config.http_proxy, timeout=config.timeout)
    if args.source == RedHatSource.name:
        adapter = RedHatSource(fetcher, versions=list(args.versions))
    else:
        adapter = SOURCES[args.source](fetcher)

    try:
        corpus = run_conversion(adapter, config)
    except ConvertError as e:
        print(f"Error converting {args.source}: {e}", file=sys.stderr)
        sys.exit(1)

    total = sum(len(by_cve) for by_cve in corpus.values())
    print(f"Converted {total} CVEs across {len(corpus)} {adapter.display_name} releases")


if __name__ == '__main__':
    main()
