"""
Service configuration.

Values come from an optional INI file, overridden by environment variables
(a ``.env`` file in the working directory is loaded first):

    [clickhouse]                CLICKHOUSE_HOST, CLICKHOUSE_PORT,
    host, port, secure,         CLICKHOUSE_SECURE, CLICKHOUSE_VERIFY,
    verify, database            CLICKHOUSE_DATABASE

    [lens]                      LENS_USER, LENS_PASSWORD
    user, password

    [web]                       SESSION_SECRET
    session_secret

    [logging]                   LOG_LEVEL, LOG_JSON
    level, json
"""
import configparser
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from dotenv import load_dotenv

DEFAULT_HTTP_PORT = 8123
DEFAULT_HTTPS_PORT = 8443

# INI section/option -> environment variable
_ENV_OVERRIDES = {
    ('clickhouse', 'host'): 'CLICKHOUSE_HOST',
    ('clickhouse', 'port'): 'CLICKHOUSE_PORT',
    ('clickhouse', 'secure'): 'CLICKHOUSE_SECURE',
    ('clickhouse', 'verify'): 'CLICKHOUSE_VERIFY',
    ('clickhouse', 'database'): 'CLICKHOUSE_DATABASE',
    ('lens', 'user'): 'LENS_USER',
    ('lens', 'password'): 'LENS_PASSWORD',
    ('web', 'session_secret'): 'SESSION_SECRET',
    ('logging', 'level'): 'LOG_LEVEL',
    ('logging', 'json'): 'LOG_JSON',
}


@dataclass(frozen=True)
class ClickHouseConfig:
    """Connection parameters for one ClickHouse account."""
    host: str
    port: int
    username: str
    password: str = ''
    database: str = 'default'
    secure: bool = False
    verify: bool = True


@dataclass(frozen=True)
class Settings:
    """Resolved service settings."""
    host: Optional[str] = None
    port: int = DEFAULT_HTTP_PORT
    secure: bool = False
    verify: bool = True
    database: str = 'default'
    lens_user: Optional[str] = None
    lens_password: str = ''
    session_secret: str = 'complex_password_at_least_32_characters_long_for_security'
    log_level: str = 'INFO'
    log_json: bool = False

    def is_lens_configured(self) -> bool:
        return bool(self.host and self.lens_user)

    def lens_config(self) -> Optional[ClickHouseConfig]:
        """Connection parameters of the privileged read-only service account."""
        if not self.is_lens_configured():
            return None
        return ClickHouseConfig(
            host=self.host,
            port=self.port,
            username=self.lens_user,
            password=self.lens_password,
            database=self.database,
            secure=self.secure,
            verify=self.verify,
        )

    def user_config(self, username: str, password: str,
                    database: Optional[str] = None) -> Optional[ClickHouseConfig]:
        """Connection parameters for a logged-in user."""
        if not self.host:
            return None
        return ClickHouseConfig(
            host=self.host,
            port=self.port,
            username=username,
            password=password,
            database=database or self.database,
            secure=self.secure,
            verify=self.verify,
        )


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _read_values(config_path: Optional[str], environ: Mapping[str, str]) -> dict:
    parser = configparser.ConfigParser(interpolation=None)
    if config_path:
        parser.read(config_path)

    values = {}
    for (section, option), env_name in _ENV_OVERRIDES.items():
        value = parser.get(section, option, fallback=None)
        if environ.get(env_name) is not None:
            value = environ[env_name]
        values[(section, option)] = value
    return values


def load_settings(config_path: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from an INI file and the environment.

    Args:
        config_path: Path to the configuration file (optional)
        environ: Environment mapping, defaults to os.environ after .env loading

    Returns:
        Resolved Settings
    """
    if environ is None:
        load_dotenv()
        environ = os.environ
    config_path = config_path or environ.get('CHLENS_CONFIG')
    values = _read_values(config_path, environ)

    secure = _as_bool(values[('clickhouse', 'secure')], False)
    raw_port = values[('clickhouse', 'port')]
    port = int(raw_port) if raw_port else (DEFAULT_HTTPS_PORT if secure else DEFAULT_HTTP_PORT)

    defaults = Settings()
    return Settings(
        host=values[('clickhouse', 'host')] or None,
        port=port,
        secure=secure,
        verify=_as_bool(values[('clickhouse', 'verify')], True),
        database=values[('clickhouse', 'database')] or 'default',
        lens_user=values[('lens', 'user')] or None,
        lens_password=values[('lens', 'password')] or '',
        session_secret=values[('web', 'session_secret')] or defaults.session_secret,
        log_level=values[('logging', 'level')] or defaults.log_level,
        log_json=_as_bool(values[('logging', 'json')], False),
    )
