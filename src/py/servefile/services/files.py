import os
import posixpath
import stat
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path
from urllib.parse import quote

from ..config import INDEX
from ..http.model import HTTPRequest, HTTPResponse
from ..model import ResponseSink
from ..utils.htmpl import H, Node, html

NOT_FOUND: str = "404 page not found"
FORBIDDEN: str = "403 Forbidden"
INTERNAL_ERROR: str = "500 Internal Server Error"
INVALID_PATH: str = "invalid URL path"

FILE_CSS: str = """
:root {
    font-family: sans-serif;
    font-size: 14px;
    line-height: 1.35em;
    padding: 20px;
    background: #F0F0F0;
}
ul {
    padding: 0px 20px;
    list-style-type: none;
}
li {
    margin: 0.5em 0em;
}
"""

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


def httpError(request: HTTPRequest, message: str, status: int) -> HTTPResponse:
	"""Creates a plain text error response. All not found errors share the
	exact same body, so that a client can't tell them apart."""
	return request.error(
		status,
		content=f"{message}\n",
		contentType="text/plain; charset=utf-8",
		headers={"X-Content-Type-Options": "nosniff"},
	)


def notFound(sink: ResponseSink, request: HTTPRequest) -> None:
	sink.send(httpError(request, NOT_FOUND, 404))


def osError(request: HTTPRequest, error: OSError | ValueError) -> HTTPResponse:
	"""Maps the error raised when accessing a path to a response. Paths the
	filesystem rejects, like ones with a NUL byte, raise `ValueError`."""
	if isinstance(error, (FileNotFoundError, NotADirectoryError)):
		return httpError(request, NOT_FOUND, 404)
	elif isinstance(error, PermissionError):
		return httpError(request, FORBIDDEN, 403)
	else:
		return httpError(request, INTERNAL_ERROR, 500)


# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def hasDotDot(path: str) -> bool:
	"""Tells if the URL path has a `..` segment."""
	return ".." in path.replace("\\", "/").split("/")


def localRedirect(request: HTTPRequest, location: str) -> HTTPResponse:
	"""A permanent redirect to a location relative to the request path,
	so that it keeps working when mounted under a prefix."""
	url = quote(location)
	if request.query:
		url = f"{url}?{request.rawQuery}"
	return request.redirect(url, permanent=True)


def isModifiedSince(request: HTTPRequest, mtime: float) -> bool:
	"""Evaluates the `If-Modified-Since` precondition, which has
	a one second granularity."""
	since = request.header("If-Modified-Since")
	if not since or request.method not in ("GET", "HEAD"):
		return True
	try:
		t = parsedate_to_datetime(since).timestamp()
	except (TypeError, ValueError):
		return True
	return int(mtime) > t


def lastModified(mtime: float) -> str:
	return formatdate(mtime, usegmt=True)


def renderDir(request: HTTPRequest, localPath: Path) -> HTTPResponse:
	"""Renders an HTML listing of the directory, with sub-directories
	suffixed with a `/`."""
	items: list[Node] = []
	for p in sorted(localPath.iterdir(), key=lambda _: _.name):
		name = f"{p.name}/" if p.is_dir() else p.name
		items.append(H.li(H.a(name, href=quote(name))))
	title = request.path
	return request.respondHTML(
		"".join(
			html(
				H.html(
					H.head(
						H.meta(charset="utf-8"),
						H.title(title),
						H.style(FILE_CSS),
					),
					H.body(H.h1(f"Listing for {title}"), H.ul(*items)),
				),
				doctype="html",
			)
		)
	)


# -----------------------------------------------------------------------------
#
# FILE SERVER
#
# -----------------------------------------------------------------------------


def serveFile(sink: ResponseSink, request: HTTPRequest, path: str) -> None:
	"""Serves the file or directory at the given filesystem `path` in
	response to `request`. Directories are served through their index
	document when there is one, or as a listing otherwise. Requests for the
	index document by name are redirected to the directory."""
	url: str = request.path
	if hasDotDot(url):
		sink.send(httpError(request, INVALID_PATH, 400))
		return
	if url.endswith(f"/{INDEX}"):
		sink.send(localRedirect(request, "./"))
		return
	local_path = Path(path)
	try:
		stats = local_path.stat()
	except (OSError, ValueError) as e:
		sink.send(osError(request, e))
		return
	if not stat.S_ISDIR(stats.st_mode) and url.endswith("/"):
		# `Path` drops the trailing slash, so files resolve here too
		sink.send(localRedirect(request, f"../{posixpath.basename(url.rstrip('/'))}"))
		return
	if stat.S_ISDIR(stats.st_mode):
		if not url.endswith("/"):
			sink.send(localRedirect(request, f"{posixpath.basename(url)}/"))
			return
		index_path = local_path / INDEX
		try:
			index_stats = index_path.stat()
		except (OSError, ValueError):
			index_stats = None
		if index_stats is None or stat.S_ISDIR(index_stats.st_mode):
			if not os.access(local_path, os.R_OK):
				sink.send(httpError(request, FORBIDDEN, 403))
			elif not isModifiedSince(request, stats.st_mtime):
				sink.send(request.respondEmpty(304))
			else:
				res = renderDir(request, local_path)
				res.setHeader("Last-Modified", lastModified(stats.st_mtime))
				sink.send(res)
			return
		local_path, stats = index_path, index_stats
	if not os.access(local_path, os.R_OK):
		sink.send(httpError(request, FORBIDDEN, 403))
	elif not isModifiedSince(request, stats.st_mtime):
		sink.send(request.respondEmpty(304))
	else:
		try:
			res = request.respondFile(
				local_path, headers={"Last-Modified": lastModified(stats.st_mtime)}
			)
		except OSError as e:
			# The file may have gone away since it was checked
			res = osError(request, e)
		sink.send(res)


# EOF
