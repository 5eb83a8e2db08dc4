import asyncio
import logging
import signal
import sys
from typing import Optional, Set, Tuple

from pyresp.commands import Invalid, dispatch, render
from pyresp.config import ConfigError, ServerConfig, parse_args
from pyresp.utils import setup_logging

logger = logging.getLogger(__name__)


class RespServer:
    """Accepts connections and answers RESP commands on each of them.

    Every connection runs as its own task. Live tasks are tracked so that
    ``stop`` can cancel them, and ``max_connections`` (when set) makes new
    connections wait for a free slot.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self._server: Optional[asyncio.AbstractServer] = None
        self._connections: Set[asyncio.Task] = set()
        self._slots = asyncio.Semaphore(self.config.max_connections) if self.config.max_connections else None
        self._closing = asyncio.Event()

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(host={self.config.host!r}, port={self.config.port!r}, "
            f"connections={len(self._connections)})"
        )

    @property
    def address(self) -> Tuple[str, int]:
        if self._server is None:
            raise RuntimeError("server is not running")
        return self._server.sockets[0].getsockname()[:2]

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def start(self) -> None:
        """Bind the listening socket. Raises OSError if the address is unavailable."""
        self._closing.clear()
        self._server = await asyncio.start_server(self.handle_client, self.config.host, self.config.port)
        logger.info("Server listening on %s:%s", *self.address)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        try:
            await self._closing.wait()
        finally:
            await self.stop()

    def close(self) -> None:
        """Ask ``serve_forever`` to shut down."""
        self._closing.set()

    async def stop(self) -> None:
        if self._server is None:
            return
        logger.info("Server shutting down, closing %d connection(s)", len(self._connections))
        server, self._server = self._server, None
        server.close()

        tasks = list(self._connections)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await server.wait_closed()

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        addr = writer.get_extra_info("peername")
        task = asyncio.current_task()
        self._connections.add(task)
        logger.debug("Client connected from %s", addr)

        try:
            if self._slots is None:
                await self._serve_connection(reader, writer, addr)
            else:
                async with self._slots:
                    await self._serve_connection(reader, writer, addr)
        finally:
            self._connections.discard(task)
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError as e:
                logger.debug("Error while closing connection to %s: %r", addr, e)
            logger.debug("Client %s disconnected", addr)

    async def _serve_connection(self, reader, writer, addr) -> None:
        buffer = bytearray()

        while True:
            try:
                data = await reader.read(self.config.buffer_size)
            except OSError as e:
                logger.error("Failed to read from %s; err = %r", addr, e)
                return
            if not data:
                return

            buffer += data
            commands = dispatch(buffer)
            if len(buffer) > self.config.max_buffer_size:
                logger.warning("Dropping %d buffered bytes from %s without a complete frame", len(buffer), addr)
                buffer.clear()
                commands.append(Invalid())

            for command in commands:
                response = render(command)
                logger.debug("Response is %r", response)
                try:
                    writer.write(response)
                    await writer.drain()
                except OSError as e:
                    logger.error("Failed to write to %s; err = %r", addr, e)
                    return


async def run(config: ServerConfig) -> None:
    server = RespServer(config)
    await server.start()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, server.close)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still stops the process.
            break

    await server.serve_forever()


def main(argv=None) -> int:
    try:
        config = parse_args(argv)
    except ConfigError as e:
        print(f"pyresp: error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level)
    try:
        asyncio.run(run(config))
    except OSError as e:
        logger.critical("Could not listen on %s:%s: %s", config.host, config.port, e)
        return 1
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
