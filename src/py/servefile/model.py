from abc import ABC, abstractmethod
from typing import Callable, TypeAlias

from .http.model import HTTPRequest, HTTPResponse

# -----------------------------------------------------------------------------
#
# SINKS
#
# -----------------------------------------------------------------------------


class ResponseSink(ABC):
	"""Receives the one response produced for a request. Transports write
	it out, recorders keep it around for inspection."""

	@abstractmethod
	def send(self, response: HTTPResponse) -> None: ...


class ResponseSlot(ResponseSink):
	"""A sink that holds on to the response it is sent."""

	__slots__ = ["response"]

	def __init__(self) -> None:
		self.response: HTTPResponse | None = None

	@property
	def isSent(self) -> bool:
		return self.response is not None

	def send(self, response: HTTPResponse) -> None:
		if self.response is not None:
			raise RuntimeError(
				f"A response was already sent: {self.response}, cannot send {response}"
			)
		self.response = response


# -----------------------------------------------------------------------------
#
# SIGNATURES
#
# -----------------------------------------------------------------------------

# Serves a request, sending the response to the sink
THandler: TypeAlias = Callable[[ResponseSink, HTTPRequest], None]

# Serves the file at the given (already resolved) filesystem path
TFileServer: TypeAlias = Callable[[ResponseSink, HTTPRequest, str], None]

# Registers the handler and serves it on the binding, blocking until the
# server stops.
TListener: TypeAlias = Callable[[str, THandler], None]

# EOF
