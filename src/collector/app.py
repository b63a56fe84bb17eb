"""
Main application for the collector.
- Listens for SSH login notifications on TCP and UDP (same port number)
- Hands every payload to the ingestion pipeline as an independent task
- Creates the InfluxDB database in the background, retrying until it exists
"""

import asyncio
from typing import Callable, Optional, Set, Tuple

from shared.services.geolocation_service import GeolocationService
from shared.services.influx_service import InfluxService, RetryPolicy
from shared.utils.configs import (
    geolocation_configs,
    influx_configs,
    listener_configs,
)
from shared.utils.logger import logger, setup_logger

from .service import IngestionPipeline

Dispatch = Callable[[bytes], None]


class DatagramIngestProtocol(asyncio.DatagramProtocol):
    """UDP endpoint: every datagram is one notification."""

    def __init__(self, dispatch: Dispatch):
        self.dispatch = dispatch

    def datagram_received(self, data: bytes, addr: Tuple):
        logger.debug(f"Datagram from {addr[0]}:{addr[1]}")
        self.dispatch(data)

    def error_received(self, exc: Exception):
        logger.error(f"UDP endpoint error: {exc}")


class DualTransportListener:
    """
    Accepts notifications over TCP and UDP on one port number.

    TCP senders connect, send a single payload and are disconnected as soon
    as it arrives. Each payload is processed in its own task.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        host: str = listener_configs["host"],
        port: int = listener_configs["port"],
        max_payload_bytes: int = listener_configs["max_payload_bytes"],
    ):
        self.pipeline = pipeline
        self.host = host
        self.port = port
        self.max_payload_bytes = max_payload_bytes
        self.tcp_server: Optional[asyncio.AbstractServer] = None
        self.udp_transport: Optional[asyncio.DatagramTransport] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def tcp_port(self) -> Optional[int]:
        if self.tcp_server is None or not self.tcp_server.sockets:
            return None
        return self.tcp_server.sockets[0].getsockname()[1]

    @property
    def udp_port(self) -> Optional[int]:
        if self.udp_transport is None:
            return None
        return self.udp_transport.get_extra_info("sockname")[1]

    def dispatch(self, data: bytes):
        """Start a pipeline run for one payload without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.pipeline.process(data))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"An error has occurred processing one connection: {task.exception()}"
            )

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ):
        peer = writer.get_extra_info("peername")
        remote = f"{peer[0]}:{peer[1]}" if peer else "unknown"
        logger.info(f"CONNECTED: {remote}")
        try:
            data = await reader.read(self.max_payload_bytes)
        except ConnectionError as e:
            logger.warning(f"Connection from {remote} failed: {e}")
            data = b""
        finally:
            writer.close()
        try:
            await writer.wait_closed()
        except ConnectionError as e:
            logger.debug(f"Connection from {remote} reset while closing: {e}")
        logger.info(f"CLOSED: {remote}")

        if data:
            self.dispatch(data)

    async def start(self):
        """Bind both transports."""
        loop = asyncio.get_running_loop()
        self.tcp_server = await asyncio.start_server(
            self._handle_connection, self.host, self.port
        )
        logger.info(f"TCP Server is running on port {self.tcp_port}.")

        self.udp_transport, _ = await loop.create_datagram_endpoint(
            lambda: DatagramIngestProtocol(self.dispatch),
            local_addr=(self.host, self.port),
        )
        logger.info(f"UDP Server is running on port {self.udp_port}.")

    async def serve_forever(self):
        if self.tcp_server is None:
            await self.start()
        await self.tcp_server.serve_forever()

    async def close(self):
        """Stop accepting notifications and wait for in-flight pipeline runs."""
        if self.udp_transport is not None:
            self.udp_transport.close()
        if self.tcp_server is not None:
            self.tcp_server.close()
            await self.tcp_server.wait_closed()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("Listener closed")


async def run():
    """
    Build the collector from configuration and serve until cancelled.

    The database is created in the background so notifications are accepted
    while InfluxDB is still unreachable.
    """
    geolocation = GeolocationService(base_url=geolocation_configs["base_url"])
    sink = InfluxService(
        host=influx_configs["host"],
        port=influx_configs["port"],
        protocol=influx_configs["protocol"],
        username=influx_configs["username"],
        password=influx_configs["password"],
        database=influx_configs["database"],
        retry_policy=RetryPolicy(interval=influx_configs["retry_interval"]),
    )
    pipeline = IngestionPipeline(
        geolocation,
        sink,
        delimiter=listener_configs["payload_delimiter"],
        measurement=influx_configs["measurement"],
    )
    listener = DualTransportListener(
        pipeline,
        host=listener_configs["host"],
        port=listener_configs["port"],
        max_payload_bytes=listener_configs["max_payload_bytes"],
    )

    database_task = asyncio.create_task(sink.ensure_database())
    try:
        await listener.serve_forever()
    finally:
        database_task.cancel()
        await asyncio.gather(database_task, return_exceptions=True)
        await listener.close()
        await sink.close()
        await geolocation.close()


def main():
    """Entry point for the geossh console script."""
    setup_logger()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Shutting down")
