"""
ClickHouse table dependency graph - web application
"""

from typing import Callable, Optional
from flask import Flask, current_app, jsonify, request

from ..config import ClickHouseConfig, Settings, load_settings
from ..db.connection import ClickHouseConnection
from ..db_scanner.catalog import CatalogReader
from ..db_scanner.graph import build_dependency_graph
from ..db_scanner.parser import DdlFormatter
from ..errors import ApiError
from ..logging_config import get_logger
from .auth import get_session, login_required, login_user, logout_user

logger = get_logger(__name__)

ConnectionFactory = Callable[[ClickHouseConfig], object]


def create_app(settings: Optional[Settings] = None,
               connection_factory: Optional[ConnectionFactory] = None) -> Flask:
    """Application factory."""
    app = Flask(__name__)
    settings = settings or load_settings()
    app.config['SECRET_KEY'] = settings.session_secret
    app.config['SESSION_COOKIE_NAME'] = 'chlens-session'
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.extensions['chlens'] = {
        'settings': settings,
        'connection_factory': connection_factory or ClickHouseConnection,
    }

    app.add_url_rule('/api/auth/login', view_func=login, methods=['POST'])
    app.add_url_rule('/api/auth/logout', view_func=logout, methods=['POST'])
    app.add_url_rule('/api/auth/session', view_func=session_info, methods=['GET'])
    app.add_url_rule('/api/clickhouse/tables/explorer/dependencies',
                     view_func=table_dependencies, methods=['GET'])
    app.add_url_rule('/api/clickhouse/tables/explorer/ddl',
                     view_func=table_ddl, methods=['GET'])
    return app


def _settings() -> Settings:
    return current_app.extensions['chlens']['settings']


def _connect(config: ClickHouseConfig):
    return current_app.extensions['chlens']['connection_factory'](config)


def _close(client):
    close = getattr(client, 'close', None)
    if close is not None:
        close()


def _error_response(error: ApiError):
    return jsonify(error.envelope()), error.status


def _failure(error: Exception, user_message: str):
    """Convert an exception raised while serving a request into an envelope."""
    if isinstance(error, ApiError):
        return _error_response(error)
    return _error_response(ApiError.internal_error(str(error), user_message))


def _lens_client():
    settings = _settings()
    if not settings.is_lens_configured():
        raise ApiError.config_error()
    return _connect(settings.lens_config())


def login():
    """Check credentials against ClickHouse and open a session."""
    payload = request.get_json(silent=True) or {}
    username = payload.get('username')
    password = payload.get('password') or ''
    if not username:
        return _error_response(ApiError.bad_request(
            "Username is required", "Please enter a username"))

    config = _settings().user_config(username, password)
    if config is None:
        return _error_response(ApiError.config_error("ClickHouse host not configured"))

    client = None
    try:
        client = _connect(config)
        client.ping()
    except ApiError as e:
        logger.warning("Login failed for %s: %s", username, e.message)
        e.status = 401
        return _error_response(e)
    except Exception as e:
        logger.exception("Login error for %s", username)
        return _failure(e, "Failed to connect to ClickHouse")
    finally:
        if client is not None:
            _close(client)

    login_user(username)
    logger.info("User %s logged in", username)
    return jsonify({"success": True, "user": {"username": username}})


def logout():
    logout_user()
    return jsonify({"success": True})


def session_info():
    return jsonify(get_session().to_dict())


def _parse_depth(raw: Optional[str]) -> int:
    if raw is None or raw == '':
        return 1
    try:
        depth = int(raw)
    except ValueError:
        raise ApiError.bad_request(f"Invalid depth: {raw}", "Depth must be a number")
    if depth < 0:
        raise ApiError.bad_request(f"Invalid depth: {raw}", "Depth must not be negative")
    return depth


@login_required
def table_dependencies():
    """Dependency graph of all tables in a database.

    Query parameters:
        database: database to inspect (required)
        table: only return the neighborhood of this table (optional)
        depth: neighborhood radius in hops, default 1
        connected: when truthy, omit tables without any dependency
    """
    client = None
    try:
        client = _lens_client()

        database = request.args.get('database')
        if not database:
            raise ApiError.bad_request("Database parameter is required",
                                       "Please specify a database")
        table = request.args.get('table')
        depth = _parse_depth(request.args.get('depth'))

        rows, validator = CatalogReader(client).read(database)
        graph = build_dependency_graph(rows, validator)

        if table:
            graph = graph.neighborhood(f"{database}.{table}", depth)
        if request.args.get('connected', '').lower() in ('1', 'true', 'yes'):
            graph = graph.connected_only()

        return jsonify({"success": True, "data": graph.to_dict()})
    except ApiError as e:
        if e.status == 200:
            logger.error("Table dependencies error: %s", e.message)
        return _error_response(e)
    except Exception as e:
        logger.exception("Table dependencies error")
        return _failure(e, "Failed to fetch table dependencies")
    finally:
        if client is not None:
            _close(client)


@login_required
def table_ddl():
    """CREATE statement of one table, with a formatted copy for display."""
    client = None
    try:
        client = _lens_client()

        database = request.args.get('database')
        table = request.args.get('table')
        if not database or not table:
            raise ApiError.bad_request("Database and table parameters are required",
                                       "Please specify a database and a table")

        row = CatalogReader(client).read_ddl(database, table)
        if row is None:
            raise ApiError(60, f"Table {database}.{table} does not exist",
                           "UNKNOWN_TABLE", "Table not found")

        return jsonify({
            "success": True,
            "data": {
                "database": row.database,
                "name": row.name,
                "engine": row.engine,
                "ddl": row.create_table_query,
                "formatted": DdlFormatter.format_ddl(row.create_table_query),
            },
        })
    except ApiError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception("Table DDL error")
        return _failure(e, "Failed to fetch table DDL")
    finally:
        if client is not None:
            _close(client)
