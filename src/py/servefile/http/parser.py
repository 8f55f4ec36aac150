from typing import Iterator, Literal, TypeAlias
from urllib.parse import unquote

from .model import (
	HTTPBodyBlob,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)

EOL: bytes = b"\r\n"

# Request heads larger than this are rejected
MAX_LINE: int = 64_000

# Request bodies larger than this are rejected
MAX_BODY: int = 64_000

THTTPAtom: TypeAlias = HTTPRequestLine | HTTPHeaders | HTTPProcessingStatus | HTTPRequest


class LineParser:
	"""Accumulates bytes until an end of line is found."""

	__slots__ = ["buffer", "line", "eol", "offset"]

	def __init__(self, eol: bytes = EOL) -> None:
		self.buffer: bytearray = bytearray()
		self.line: bytes | None = None
		self.offset: int = 0
		self.eol: bytes = eol

	def reset(self) -> "LineParser":
		self.buffer.clear()
		self.line = None
		self.offset = 0
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bytes | None, int]:
		"""Returns the matching line and how many bytes were read in chunk
		from start. When line is None, the whole chunk has been consumed."""
		pos = len(self.buffer)
		self.buffer += chunk[start:]
		end = self.buffer.find(self.eol, self.offset)
		if end == -1:
			self.offset = max(0, len(self.buffer) - len(self.eol) + 1)
			return None, len(chunk) - start
		else:
			self.line = bytes(self.buffer[:end])
			self.buffer.clear()
			self.offset = 0
			return self.line, (end - pos) + len(self.eol)

	@property
	def pending(self) -> int:
		return len(self.buffer)


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()

	def reset(self) -> "MessageParser":
		self.line.reset()
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[HTTPRequestLine | Literal[False] | None, int]:
		"""Returns the request line once complete, `False` when the line
		is malformed, `None` when more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			# Empty lines between requests are tolerated
			return None, read
		try:
			ln = line.decode("ascii")
		except UnicodeDecodeError:
			return False, read
		parts = ln.split(" ")
		if len(parts) != 3 or not parts[2].startswith("HTTP/"):
			return False, read
		method, uri, protocol = parts
		path, _, query = uri.partition("?")
		return HTTPRequestLine(method, path, query, protocol), read


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` the headers
		are complete, otherwise it is the name of the parsed header."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return False, read
		ln: str = line.decode("latin-1")
		i = ln.find(":")
		if i == -1:
			return None, read
		h = ln[:i].strip().lower()
		v = ln[i + 1 :].strip()
		if h == "content-length":
			self.contentLength = int(v) if v.isdigit() else None
		elif h == "content-type":
			self.contentType = v
		n: str = headername(h)
		self.headers[n] = v
		return n, read


class BodyLengthParser:
	"""Parses the body of a request with a content length"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob.FromBytes(b"".join(self.data))
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool, int]:
		"""Returns `True` when the body is complete, along with the number
		of bytes read."""
		to_read: int = min(len(chunk) - start, self.expected - self.read)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return self.read >= self.expected, to_read


class HTTPParser:
	"""A stateful HTTP request parser. Chunks of bytes are fed to it, and
	it yields request lines, headers and complete requests. Pipelined
	requests within the same chunk are all yielded."""

	def __init__(self) -> None:
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.body: BodyLengthParser = BodyLengthParser()
		self.parser: MessageParser | HeadersParser | BodyLengthParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def reset(self) -> "HTTPParser":
		self.parser = self.message.reset()
		self.headers.reset()
		self.body.reset()
		self.requestLine = None
		self.requestHeaders = None
		return self

	def feed(self, chunk: bytes) -> Iterator[THTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			if self.parser is self.message:
				line, read = self.message.feed(chunk, offset)
				offset += read
				if line is False:
					yield HTTPProcessingStatus.BadFormat
					self.reset()
					return
				elif line is not None:
					self.requestLine = line
					yield line
					self.parser = self.headers
				elif self.message.line.pending > MAX_LINE:
					yield HTTPProcessingStatus.BadFormat
					self.reset()
					return
			elif self.parser is self.headers:
				name, read = self.headers.feed(chunk, offset)
				offset += read
				if name is False:
					headers = self.headers.flush()
					self.requestHeaders = headers
					yield headers
					if headers.contentLength and headers.contentLength > MAX_BODY:
						yield HTTPProcessingStatus.BadFormat
						self.reset()
						return
					elif headers.contentLength:
						self.parser = self.body.reset(headers.contentLength)
						yield HTTPProcessingStatus.Body
					else:
						yield self.complete(HTTPBodyBlob())
				elif self.headers.line.pending > MAX_LINE:
					yield HTTPProcessingStatus.BadFormat
					self.reset()
					return
			else:
				done, read = self.body.feed(chunk, offset)
				offset += read
				if done:
					yield self.complete(self.body.flush())

	def complete(self, body: HTTPBodyBlob) -> HTTPRequest:
		"""Creates the request from what was parsed, and gets ready for the
		next one."""
		line = self.requestLine
		headers = self.requestHeaders
		if line is None or headers is None:
			raise RuntimeError("Parser has no request line or headers")
		self.parser = self.message.reset()
		self.requestLine = None
		self.requestHeaders = None
		return HTTPRequest(
			method=line.method,
			path=unquote(line.path) or "/",
			query=parseQuery(line.query),
			headers=headers,
			body=body,
			protocol=line.protocol,
		)


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		if len(kv) == 1:
			res[item] = ""
		else:
			res[kv[0]] = kv[1]
	return res


# EOF
