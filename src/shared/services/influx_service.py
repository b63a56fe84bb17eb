"""
InfluxDB 1.x client: database lifecycle and point writes over the HTTP API.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, Set, TypeVar

import aiohttp

from shared.schemas.dto import MeasurementRecord
from shared.utils.configs import influx_configs
from shared.utils.errors import DatabaseInitError, ErrorType, InfluxWriteError
from shared.utils.logger import logger

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Fixed-interval retry.

    Attributes:
        interval (float): Seconds to wait between attempts.
        max_attempts (int): Attempt limit, or None to retry until success.
        sleep (Callable): Awaitable sleep, swappable for a fake clock in tests.
    """

    interval: float = 10.0
    max_attempts: Optional[int] = None
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep)

    async def run(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        """
        Await ``operation()`` until it succeeds.

        Raises:
            Exception: The last failure, once ``max_attempts`` is exhausted.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                if self.max_attempts is not None and attempt >= self.max_attempts:
                    logger.error(f"{description} failed after {attempt} attempts: {e}")
                    raise
                logger.error(
                    f"{description} failed: {e}. Retrying in {self.interval:g}s."
                )
                await self.sleep(self.interval)


def _escape(value: str, specials: str) -> str:
    # Backslash first, otherwise a trailing "\" escapes the next separator
    value = value.replace("\\", "\\\\")
    for char in specials:
        value = value.replace(char, f"\\{char}")
    return value


def _format_field(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def to_line_protocol(record: MeasurementRecord) -> str:
    """
    Render a record as one line of InfluxDB line protocol.

    Tags are sorted by key and tags with empty values are left out.
    Numeric fields are written as floats and no timestamp is sent,
    so the server assigns its own.
    """
    line = _escape(record.measurement, ", ")
    for key in sorted(record.tags):
        value = record.tags[key]
        if value is None or str(value) == "":
            continue
        line += f",{_escape(str(key), ',= ')}={_escape(str(value), ',= ')}"
    fields = ",".join(
        f"{_escape(str(key), ',= ')}={_format_field(value)}"
        for key, value in record.fields.items()
    )
    return f"{line} {fields}"


class InfluxService:
    """
    Writes measurement records to InfluxDB and owns the target database.

    Point writes are best effort: ``write_point_nowait`` schedules the write
    and returns at once, and a failed write is only logged.
    """

    def __init__(
        self,
        host: str = influx_configs["host"],
        port: int = influx_configs["port"],
        protocol: str = influx_configs["protocol"],
        username: str = influx_configs["username"],
        password: str = influx_configs["password"],
        database: str = influx_configs["database"],
        retry_policy: Optional[RetryPolicy] = None,
        session: Optional[aiohttp.ClientSession] = None,
        base_url: Optional[str] = None,
    ):
        self.base_url = (base_url or f"{protocol}://{host}:{port}").rstrip("/")
        self.database = database
        self.auth = aiohttp.BasicAuth(username, password) if username else None
        self.retry_policy = retry_policy or RetryPolicy(
            interval=influx_configs["retry_interval"]
        )
        self._session = session
        self._pending: Set[asyncio.Task] = set()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(auth=self.auth)
        return self._session

    async def create_database(self):
        """
        Issue CREATE DATABASE for the configured database.

        InfluxDB treats this as a no-op when the database already exists.

        Raises:
            DatabaseInitError: If the request fails or is rejected.
        """
        database = self.database.replace("\\", "\\\\").replace('"', '\\"')
        query = f'CREATE DATABASE "{database}"'
        try:
            async with self._get_session().post(
                f"{self.base_url}/query", data={"q": query}
            ) as response:
                body = await response.text()
                if response.status >= 300:
                    raise DatabaseInitError(
                        message=f"CREATE DATABASE returned HTTP {response.status}: {body.strip()}",
                        error_type=ErrorType.DATABASE_ERROR,
                        status_code=response.status,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DatabaseInitError(message=f"Could not reach InfluxDB: {str(e)}")
        logger.info(f"InfluxDB database '{self.database}' is ready")

    async def ensure_database(self):
        """Create the database, retrying on the retry policy until it exists."""
        await self.retry_policy.run(
            self.create_database, f"Creating InfluxDB database '{self.database}'"
        )

    async def write_points(self, records: Iterable[MeasurementRecord]):
        """
        Write records in a single request.

        Raises:
            InfluxWriteError: If the request fails or is rejected.
        """
        body = "\n".join(to_line_protocol(record) for record in records)
        if not body:
            return
        try:
            async with self._get_session().post(
                f"{self.base_url}/write",
                params={"db": self.database},
                data=body.encode("utf-8"),
            ) as response:
                if response.status >= 300:
                    detail = (await response.text()).strip()
                    raise InfluxWriteError(
                        message=f"Write returned HTTP {response.status}: {detail}",
                        error_type=ErrorType.WRITE_ERROR,
                        status_code=response.status,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise InfluxWriteError(message=f"Could not reach InfluxDB: {str(e)}")
        logger.debug(f"Wrote points: {body}")

    async def _write_logged(self, record: MeasurementRecord):
        try:
            await self.write_points([record])
        except InfluxWriteError as e:
            logger.error(f"Dropping point for {record.tags.get('ip')}: {e.message}")
        except Exception as e:
            logger.exception(f"Unexpected error writing point: {str(e)}")

    def write_point_nowait(self, record: MeasurementRecord) -> asyncio.Task:
        """Schedule a best-effort write of one record and return immediately."""
        task = asyncio.get_running_loop().create_task(self._write_logged(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def close(self):
        """Wait for scheduled writes, then close the HTTP session."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("InfluxDB connection closed")
