import os.path
import posixpath
from pathlib import Path

from .config import INDEX
from .http.model import HTTPRequest
from .model import ResponseSink, TFileServer, THandler
from .services.files import notFound

# --
# == Handlers
#
# Handlers map a request to a file under a base directory and hand it over
# to a file server. They all share the `THandler` signature, so that they
# can be nested: `ignoreIndex(prefix(withLogging(serveFile), "www", "/static/"))`.


def resolvePath(baseDir: str, path: str) -> str | None:
	"""Joins the request `path` to `baseDir`, returning `None` when the result
	would fall outside of the base directory."""
	resolved: str = os.path.join(baseDir, path.lstrip("/"))
	root: tuple[str, ...] = Path(os.path.abspath(baseDir)).parts
	if Path(os.path.abspath(resolved)).parts[: len(root)] != root:
		return None
	return resolved


def basic(fileServer: TFileServer, baseDir: str) -> THandler:
	"""Serves the request path relative to `baseDir`."""

	def handler(sink: ResponseSink, request: HTTPRequest) -> None:
		resolved = resolvePath(baseDir, request.path)
		if resolved is None:
			notFound(sink, request)
		else:
			fileServer(sink, request, resolved)

	return handler


def prefix(fileServer: TFileServer, baseDir: str, mount: str) -> THandler:
	"""Like `basic`, but only serves requests whose path starts with `mount`,
	which is stripped before resolving the path. Anything else is not found."""
	serve: THandler = basic(fileServer, baseDir)

	def handler(sink: ResponseSink, request: HTTPRequest) -> None:
		if not request.path.startswith(mount):
			notFound(sink, request)
		else:
			rest: str = request.path[len(mount) :]
			serve(sink, request.withPath(f"/{rest.lstrip('/')}"))

	return handler


def ignoreIndex(handler: THandler) -> THandler:
	"""Answers not found to requests that name the index document (see
	`SERVEFILE_INDEX`), so that it is only ever reached through its
	directory."""

	def ignoring(sink: ResponseSink, request: HTTPRequest) -> None:
		if posixpath.basename(request.path) == INDEX:
			notFound(sink, request)
		else:
			handler(sink, request)

	return ignoring


# EOF
