"""
Command line entry point

    chlens serve [--host HOST] [--port PORT] [--debug]
    chlens graph DATABASE [--table TABLE --depth N] [--connected]
"""
import argparse
import json
import sys

from .config import load_settings
from .db.connection import ClickHouseConnection
from .db_scanner.catalog import CatalogReader
from .db_scanner.graph import build_dependency_graph
from .errors import ApiError
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='chlens',
                                     description='ClickHouse table dependency graph')
    parser.add_argument('--config', help='path to an INI configuration file')
    commands = parser.add_subparsers(dest='command', required=True)

    serve = commands.add_parser('serve', help='run the web API')
    serve.add_argument('--host', default='127.0.0.1')
    serve.add_argument('--port', type=int, default=5000)
    serve.add_argument('--debug', action='store_true')

    graph = commands.add_parser('graph', help='print the dependency graph of a database as JSON')
    graph.add_argument('database')
    graph.add_argument('--table', help='only the neighborhood of this table')
    graph.add_argument('--depth', type=int, default=1)
    graph.add_argument('--connected', action='store_true',
                       help='omit tables without dependencies')
    return parser


def print_graph(settings, args) -> int:
    config = settings.lens_config()
    if config is None:
        logger.error("Lens user not configured: set CLICKHOUSE_HOST and LENS_USER")
        return 2

    with ClickHouseConnection(config) as connection:
        try:
            rows, validator = CatalogReader(connection).read(args.database)
        except ApiError as e:
            logger.error("Failed to read catalog: %s", e.user_message)
            return 1

    graph = build_dependency_graph(rows, validator)
    if args.table:
        graph = graph.neighborhood(f"{args.database}.{args.table}", args.depth)
    if args.connected:
        graph = graph.connected_only()

    json.dump(graph.to_dict(), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    setup_logging(settings.log_level, settings.log_json)

    if args.command == 'serve':
        from .web.app import create_app
        create_app(settings).run(host=args.host, port=args.port, debug=args.debug)
        return 0
    return print_graph(settings, args)


if __name__ == '__main__':
    sys.exit(main())
