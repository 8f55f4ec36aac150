from urllib.parse import unquote, urlsplit

from .http.model import HTTPBodyBlob, HTTPBodyFile, HTTPHeaders, HTTPRequest
from .http.parser import parseQuery
from .model import ResponseSlot

# --
# == Recorder
#
# Lets handlers be exercised without a server: `request()` creates
# a request the way the parser would, and `ResponseRecorder` captures the
# response the handler sends.


def request(
	method: str = "GET",
	url: str = "/",
	headers: dict[str, str] | None = None,
	*,
	protocol: str = "HTTP/1.1",
) -> HTTPRequest:
	"""Creates a request for the given URL, which can be absolute
	(`http://localhost/file.txt`) or just a path (`/file.txt?a=1`)."""
	parts = urlsplit(url)
	return HTTPRequest(
		method=method,
		path=unquote(parts.path) or "/",
		query=parseQuery(parts.query),
		headers=HTTPHeaders.Make(headers),
		body=HTTPBodyBlob(),
		protocol=protocol,
	)


class ResponseRecorder(ResponseSlot):
	"""A sink that gives access to the recorded status, headers and body."""

	@property
	def status(self) -> int | None:
		return self.response.status if self.response else None

	@property
	def headers(self) -> dict[str, str]:
		return dict(self.response.headers.headers) if self.response else {}

	def header(self, name: str) -> str | None:
		return self.response.getHeader(name) if self.response else None

	@property
	def body(self) -> bytes:
		"""The body bytes, as they would be written out. Files are read
		when accessed."""
		body = self.response.body if self.response else None
		if body is None:
			return b""
		elif isinstance(body, HTTPBodyFile):
			return body.read()
		else:
			return body.payload

	@property
	def text(self) -> str:
		return self.body.decode("utf8")


# EOF
