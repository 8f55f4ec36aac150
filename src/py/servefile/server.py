import asyncio
import ssl
import threading
from asyncio import StreamReader, StreamWriter
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, NamedTuple

from .config import LOG_REQUESTS
from .http.model import HTTPBodyWriter, HTTPProcessingStatus, HTTPRequest, HTTPResponse
from .http.parser import HTTPParser
from .model import ResponseSlot, THandler
from .utils.logging import debug, event, exception, info, warning


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	backlog: int = 10_000
	readsize: int = 64_000
	# Idle time after which a keep-alive connection is closed
	keepalive: float = 60.0
	# How often the server checks for `condition` and stop signals
	polling: float = 1.0
	logRequests: bool = LOG_REQUESTS
	# The server stops as soon as the condition returns False
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()

SERVER_NOCONTENT: bytes = b"HTTP/1.1 204 No Content\r\nConnection: close\r\n\r\n"
SERVER_BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain; charset=utf-8\r\n"
	b"Content-Length: 16\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"400 Bad Request\n"
)


def parseBinding(binding: str) -> tuple[str | None, int]:
	"""Parses a `host:port` binding. An empty host (as in `:8000`) binds all
	the interfaces, which is represented by `None`."""
	host, sep, port = binding.rpartition(":")
	if not sep:
		raise ValueError(f"Binding must be formatted as 'host:port', got: {binding!r}")
	try:
		number = int(port)
	except ValueError:
		raise ValueError(f"Binding has an invalid port: {binding!r}") from None
	if not (0 <= number <= 65535):
		raise ValueError(f"Binding port is out of range: {binding!r}")
	host = host.strip("[]")
	return (host or None), number


def tlsContext(certPath: str, keyPath: str) -> ssl.SSLContext:
	"""Creates the server TLS context, failing if the certificate or key
	can't be loaded."""
	context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
	context.load_cert_chain(certPath, keyPath)
	return context


class AIOStreamBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO streams."""

	__slots__ = ["writer"]

	def __init__(self, writer: StreamWriter) -> None:
		super().__init__()
		self.writer: StreamWriter = writer

	async def _writeBytes(self, chunk: bytes) -> bool:
		if chunk:
			self.writer.write(chunk)
			await self.writer.drain()
		return True


class AIOServer:
	"""AsyncIO backend using streams, which gives TLS support for free."""

	@classmethod
	async def OnConnection(
		cls,
		handler: THandler,
		reader: StreamReader,
		writer: StreamWriter,
		*,
		options: ServerOptions,
	) -> None:
		"""Processes the requests sent over one connection, until the client
		closes it, asks for it to be closed, or stays idle for too long."""
		parser: HTTPParser = HTTPParser()
		body: AIOStreamBodyWriter = AIOStreamBodyWriter(writer)
		keep_alive: bool = True
		req_count: int = 0
		res_count: int = 0
		try:
			while keep_alive:
				try:
					chunk: bytes = await asyncio.wait_for(
						reader.read(options.readsize), timeout=options.keepalive
					)
				except asyncio.TimeoutError:
					debug("Client idle, closing", Requests=req_count)
					break
				if not chunk:
					# No data means the client closed the connection
					break
				for atom in parser.feed(chunk):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Requests=req_count)
						await body.write(SERVER_BAD_REQUEST)
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						if options.logRequests:
							event(atom.method, atom.path)
						if (
							atom.protocol == "HTTP/1.0"
							or (atom.header("Connection") or "").lower() == "close"
						):
							keep_alive = False
						if await cls.SendResponse(atom, handler, body):
							res_count += 1
						else:
							keep_alive = False
							break
			if res_count != req_count:
				warning("Incomplete responses", Requests=req_count, Responses=res_count)
		except (ConnectionError, ssl.SSLError) as e:
			debug("Connection lost", Error=str(e), Requests=req_count)
		except Exception as e:
			exception(e)
		finally:
			# The loop above takes care of keep alive, so we always close
			# the connection on exit.
			writer.close()
			try:
				await writer.wait_closed()
			except (ConnectionError, ssl.SSLError):  # nosec: B110
				pass

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		handler: THandler,
		writer: HTTPBodyWriter,
	) -> HTTPResponse | None:
		"""Processes the request with the handler and sends the response it
		produced using the given writer."""
		sink = ResponseSlot()
		try:
			handler(sink, request)
		except Exception as e:
			exception(e, f"Handler failed on {request.method} {request.path}")
			if not sink.isSent:
				sink.send(
					request.error(
						500,
						content="500 Internal Server Error\n",
						contentType="text/plain; charset=utf-8",
					)
				)
		res: HTTPResponse | None = sink.response
		if res is None:
			warning(
				"Handler did not send a response",
				Method=request.method,
				Path=request.path,
			)
			await writer.write(SERVER_NOCONTENT)
			return None
		await writer.write(res.head())
		# HEAD responses announce the body without sending it
		if request.method != "HEAD":
			await writer.write(res.body)
		return res

	@classmethod
	async def Serve(
		cls,
		handler: THandler,
		host: str | None,
		port: int,
		*,
		tls: ssl.SSLContext | None = None,
		options: ServerOptions = OPTIONS,
	) -> None:
		"""Main server coroutine, returns once the server is stopped. Binding
		errors are raised as is."""
		tasks: set[asyncio.Task[Any]] = set()

		async def onConnection(reader: StreamReader, writer: StreamWriter) -> None:
			task = asyncio.current_task()
			if task:
				tasks.add(task)
			try:
				await cls.OnConnection(handler, reader, writer, options=options)
			finally:
				if task:
					tasks.discard(task)

		server = await asyncio.start_server(
			onConnection,
			host,
			port,
			ssl=tls,
			backlog=options.backlog,
			reuse_address=True,
		)
		loop = asyncio.get_running_loop()
		state = ServerState()
		# Signal handlers can only be registered from the main thread
		with_signals: bool = (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		)
		if with_signals:
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)
		info(
			"Server listening",
			icon="🚀",
			Host=host or "*",
			Port=port,
			TLS=tls is not None,
		)
		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				await asyncio.sleep(options.polling)
		finally:
			server.close()
			for task in list(tasks):
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)
			await server.wait_closed()
			if with_signals:
				loop.remove_signal_handler(SIGINT)
				loop.remove_signal_handler(SIGTERM)


def listenAndServe(
	binding: str, handler: THandler, *, options: ServerOptions = OPTIONS
) -> None:
	"""Serves the handler on the `host:port` binding, blocking until the
	server stops."""
	host, port = parseBinding(binding)
	try:
		asyncio.run(AIOServer.Serve(handler, host, port, options=options))
	except KeyboardInterrupt:
		event("ManualShutdown")


def listenAndServeTLS(
	binding: str,
	certPath: str,
	keyPath: str,
	handler: THandler,
	*,
	options: ServerOptions = OPTIONS,
) -> None:
	"""Like `listenAndServe`, over TLS using the given PEM certificate and
	key files."""
	host, port = parseBinding(binding)
	tls = tlsContext(certPath, keyPath)
	try:
		asyncio.run(AIOServer.Serve(handler, host, port, tls=tls, options=options))
	except KeyboardInterrupt:
		event("ManualShutdown")


# EOF
