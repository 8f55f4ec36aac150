from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Generic, TypeVar

from ..utils.files import contentType as getContentType
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------

# --
# == HTTP Request Response API
#
# Defines the high level functions (orthogonal to the underlying model)
# used to create responses from a request.


class ResponseFactory(ABC, Generic[T]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	def error(
		self,
		status: int,
		content: str | None = None,
		contentType: str = "text/plain",
		headers: dict[str, str] | None = None,
	) -> T:
		message = HTTP_STATUS.get(status, "Server Error")
		return self.respond(
			content=message if content is None else content,
			contentType=contentType,
			status=status,
			message=message,
			headers=headers,
		)

	def redirect(self, url: str, permanent: bool = False) -> T:
		# SEE: https://developer.mozilla.org/en-US/docs/Web/HTTP/Redirections
		return self.respondEmpty(
			status=301 if permanent else 302, headers={"Location": str(url)}
		)

	def respondHTML(
		self, html: str | bytes, status: int = 200
	) -> T:
		return self.respond(
			content=html, contentType="text/html; charset=utf-8", status=status
		)

	def respondFile(
		self,
		path: Path | str,
		headers: dict[str, str] | None = None,
		status: int = 200,
		contentType: str | None = None,
	) -> T:
		p: Path = path if isinstance(path, Path) else Path(path)
		content_type: str = contentType or getContentType(p)
		content_length: str = str(p.stat().st_size)
		base_headers = {"Content-Type": content_type, "Content-Length": content_length}
		return self.respond(
			content=p,
			status=status,
			headers=base_headers | headers if headers else base_headers,
		)

	def respondEmpty(self, status: int, headers: dict[str, str] | None = None) -> T:
		return self.respond(content=None, status=status, headers=headers)


# EOF
