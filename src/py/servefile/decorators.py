import time

from .http.model import HTTPRequest, HTTPResponse
from .model import ResponseSink, TFileServer
from .utils.logging import event, exception


class ObservedSink(ResponseSink):
	"""Forwards the response to the wrapped sink as is, noting its status."""

	__slots__ = ["sink", "status"]

	def __init__(self, sink: ResponseSink) -> None:
		self.sink: ResponseSink = sink
		self.status: int | None = None

	def send(self, response: HTTPResponse) -> None:
		self.status = response.status
		self.sink.send(response)


def withLogging(fileServer: TFileServer) -> TFileServer:
	"""Wraps the file server so that each served request is logged with its
	method, path, status and duration. The response is left untouched, and
	a failure to log never reaches the caller."""

	def logging(sink: ResponseSink, request: HTTPRequest, path: str) -> None:
		observed = ObservedSink(sink)
		started: float = time.monotonic()
		try:
			fileServer(observed, request, path)
		finally:
			try:
				event(
					request.method,
					request.path,
					File=path,
					Status=observed.status,
					Duration=(time.monotonic() - started) * 1000.0,
				)
			except Exception as e:
				exception(e, "Could not log request")

	return logging


# EOF
