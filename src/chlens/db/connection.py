"""ClickHouse connection module."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import clickhouse_connect
from clickhouse_connect.driver import Client
from clickhouse_connect.driver.exceptions import ClickHouseError, OperationalError

from ..config import ClickHouseConfig
from ..errors import ClickHouseQueryError
from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class QueryResult:
    """Rows of a query as column-name dictionaries."""
    data: List[Dict[str, Any]] = field(default_factory=list)


class ClickHouseConnection:
    """Query client for one ClickHouse account, usable as a context manager."""

    def __init__(self, config: ClickHouseConfig, connect_timeout: int = 10,
                 send_receive_timeout: int = 300):
        self.config = config
        self.connect_timeout = connect_timeout
        self.send_receive_timeout = send_receive_timeout
        self._client: Optional[Client] = None

    def _connect(self) -> Client:
        if self._client is None:
            try:
                self._client = clickhouse_connect.get_client(
                    host=self.config.host,
                    port=self.config.port,
                    username=self.config.username,
                    password=self.config.password,
                    database=self.config.database,
                    secure=self.config.secure,
                    verify=self.config.verify,
                    connect_timeout=self.connect_timeout,
                    send_receive_timeout=self.send_receive_timeout,
                )
            except OperationalError as e:
                raise _network_error(e) from e
            except ClickHouseError as e:
                raise ClickHouseQueryError.from_text(str(e)) from e
            logger.debug("Connected to ClickHouse at %s:%s as %s",
                         self.config.host, self.config.port, self.config.username)
        return self._client

    def query(self, sql: str) -> QueryResult:
        """Run a read query and return its rows."""
        client = self._connect()
        try:
            result = client.query(sql)
        except OperationalError as e:
            raise _network_error(e) from e
        except ClickHouseError as e:
            raise ClickHouseQueryError.from_text(str(e)) from e
        return QueryResult(data=list(result.named_results()))

    def ping(self) -> bool:
        """Check the server accepts this account's credentials."""
        self.query("SELECT 1")
        return True

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ClickHouseConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _network_error(error: Exception) -> ClickHouseQueryError:
    parsed = ClickHouseQueryError.from_text(str(error))
    if parsed.type != "UNKNOWN_ERROR":
        return parsed
    return ClickHouseQueryError(parsed.code, parsed.message, "NETWORK_ERROR")
