import os.path
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple, TypeAlias

from ..utils.logging import warning
from .api import ResponseFactory
from .status import HTTP_NO_BODY, HTTP_STATUS

# Chunk size when streaming files out
FILE_CHUNK: int = 64_000

DEFAULT_ENCODING: str = "utf8"

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`, memoizing the result."""
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in name.split("-"))
		headers[key] = normalized
		return normalized


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None

	@staticmethod
	def Make(headers: dict[str, str] | None = None) -> "HTTPHeaders":
		"""Creates headers from a dictionary, normalizing the names."""
		normalized = {headername(k): v for k, v in (headers or {}).items()}
		length: str | None = normalized.get("Content-Length")
		return HTTPHeaders(
			normalized,
			contentType=normalized.get("Content-Type"),
			contentLength=int(length) if length and length.isdigit() else None,
		)


class HTTPProcessingStatus(Enum):
	"""Internal parser state management"""

	Body = 1
	BadFormat = 12


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a body as bytes."""

	payload: bytes = b""
	length: int = 0

	@staticmethod
	def FromBytes(data: bytes) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=data, length=len(data))

	@property
	def raw(self) -> bytes:
		return self.payload


class HTTPBodyFile(NamedTuple):
	"""Represents an HTTP body streamed from a file."""

	path: Path

	@property
	def length(self) -> int:
		return self.path.stat().st_size

	def read(self) -> bytes:
		with open(self.path, "rb") as f:
			return f.read()


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile


class HTTPBodyWriter(ABC):
	"""A generic writer for response heads and bodies."""

	__slots__ = ["written"]

	def __init__(self) -> None:
		self.written: int = 0

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if body is None:
			return True
		elif isinstance(body, bytes):
			return await self._write(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._write(body.payload)
		elif isinstance(body, HTTPBodyFile):
			return await self._writeFile(body.path)
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFile(self, path: Path, size: int = FILE_CHUNK) -> bool:
		with open(path, "rb") as f:
			while chunk := f.read(size):
				await self._write(chunk)
		return True

	async def _write(self, chunk: bytes) -> bool:
		self.written += len(chunk)
		return await self._writeBytes(chunk)

	@abstractmethod
	async def _writeBytes(self, chunk: bytes) -> bool: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP requests, which also acts as a factory for
	responses. The `path` is URL-decoded and never includes the query."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"query",
		"_headers",
		"_body",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers
		self._body: HTTPBodyBlob | None = body

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	@property
	def body(self) -> HTTPBodyBlob | None:
		return self._body

	@property
	def rawQuery(self) -> str:
		"""The query string, as it would appear after `?` in the URL."""
		if not self.query:
			return ""
		return "&".join(f"{k}={v}" if v else k for k, v in self.query.items())

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	def withPath(self, path: str) -> "HTTPRequest":
		"""Returns a copy of this request for another path, sharing headers,
		query and body."""
		return HTTPRequest(
			method=self.method,
			path=path,
			query=self.query,
			headers=self._headers,
			body=self._body,
			protocol=self.protocol,
		)

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol=self.protocol,
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.rawQuery}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		body: THTTPBody | None = None
		payload: bytes | None = None
		if content is None:
			pass
		elif isinstance(content, str):
			payload = content.encode(DEFAULT_ENCODING)
		elif isinstance(content, bytes):
			payload = content
		elif isinstance(content, Path):
			body = HTTPBodyFile(content.absolute())
			contentLength = os.path.getsize(body.path)
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		if payload is not None:
			contentLength = len(payload)
			body = HTTPBodyBlob(payload, contentLength)
		res_headers: dict[str, str] = (
			{headername(k): v for k, v in headers.items()} if headers else {}
		)
		if contentType is not None:
			res_headers["Content-Type"] = contentType
		else:
			contentType = res_headers.get("Content-Type")
		if contentLength is not None:
			res_headers["Content-Length"] = str(contentLength)
		elif "Content-Length" in res_headers:
			contentLength = int(res_headers["Content-Length"])
		elif status not in HTTP_NO_BODY:
			# An empty body still needs to be delimited for keep-alive
			contentLength = 0
			res_headers["Content-Length"] = "0"
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				res_headers,
				contentType=contentType,
				contentLength=contentLength,
			),
			body=body,
			protocol=protocol,
		)

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
	]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = str(value)
		return self

	def head(self) -> bytes:
		"""Serializes the status line and headers as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [
			f"{headername(k)}: {v}" for k, v in self.headers.headers.items()
		]
		lines.insert(0, f"{self.protocol} {self.status} {message}")
		lines.append("")
		lines.append("")
		try:
			return "\r\n".join(lines).encode("ascii")
		except UnicodeEncodeError:
			# Header values may carry non-ASCII file names
			warning("Response head is not ASCII", Status=self.status)
			return "\r\n".join(lines).encode("latin-1", errors="replace")

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
