import pytest

from conftest import (
	FILE,
	FILE_SERVERS,
	INDEX,
	NOT_FOUND,
	SUB_DEEP_FILE,
	SUB_FILE,
	SUB_INDEX,
)
from servefile import basic, ignoreIndex, prefix, serveFile, withLogging
from servefile import handlers
from servefile.handlers import resolvePath
from servefile.model import THandler
from servefile.recorder import ResponseRecorder, request
from servefile.services import files

OK = 200
MISSING = 404
REDIRECT = 301
FAILED = 500
NOTHING = ""
INTERNAL_ERROR = "500 Internal Server Error\n"


def fetch(handler: THandler, url: str) -> ResponseRecorder:
	sink = ResponseRecorder()
	handler(sink, request("GET", url))
	assert sink.isSent, f"No response sent for {url}"
	return sink


BASIC_CASES = [
	("Good base dir", "", OK, INDEX),
	("Good base index", "index.html", REDIRECT, NOTHING),
	("Good base file", "file.txt", OK, FILE),
	("Bad base file", "bad.txt", MISSING, NOT_FOUND),
	("Good base file with slash", "file.txt/", REDIRECT, NOTHING),
	("Null byte in path", "file%00.txt", FAILED, INTERNAL_ERROR),
	("Good subdir dir", "sub/", OK, SUB_INDEX),
	("Good subdir index", "sub/index.html", REDIRECT, NOTHING),
	("Good subdir file", "sub/file.txt", OK, SUB_FILE),
	("Good deep file", "sub/deep/file.txt", OK, SUB_DEEP_FILE),
	("Bad subdir file", "sub/bad.txt", MISSING, NOT_FOUND),
]


@pytest.mark.parametrize("fileServer", FILE_SERVERS)
@pytest.mark.parametrize("name,path,status,contents", BASIC_CASES)
def test_basic(baseDir, fileServer, name, path, status, contents):
	res = fetch(basic(fileServer, baseDir), f"http://localhost/{path}")
	assert res.status == status, name
	assert res.text == contents, name


PREFIX = "/my/prefix/path/"

PREFIX_CASES = [
	("Good base dir", PREFIX, OK, INDEX),
	("Good base index", f"{PREFIX}index.html", REDIRECT, NOTHING),
	("Good base file", f"{PREFIX}file.txt", OK, FILE),
	("Bad base file", f"{PREFIX}bad.txt", MISSING, NOT_FOUND),
	("Good subdir dir", f"{PREFIX}sub/", OK, SUB_INDEX),
	("Good subdir index", f"{PREFIX}sub/index.html", REDIRECT, NOTHING),
	("Good subdir file", f"{PREFIX}sub/file.txt", OK, SUB_FILE),
	("Unknown prefix", "/file.txt", MISSING, NOT_FOUND),
	("Partial prefix", "/my/prefix/file.txt", MISSING, NOT_FOUND),
	("Prefix without slash", "/my/prefix/path", MISSING, NOT_FOUND),
]


@pytest.mark.parametrize("fileServer", FILE_SERVERS)
@pytest.mark.parametrize("name,path,status,contents", PREFIX_CASES)
def test_prefix(baseDir, fileServer, name, path, status, contents):
	res = fetch(prefix(fileServer, baseDir, PREFIX), f"http://localhost{path}")
	assert res.status == status, name
	assert res.text == contents, name


@pytest.mark.parametrize(
	"path",
	["", "index.html", "file.txt", "file.txt/", "bad.txt", "sub/", "sub", "sub/deep/"],
)
def test_prefix_is_basic_under_a_mount(baseDir, path):
	mounted = fetch(prefix(serveFile, baseDir, PREFIX), f"{PREFIX}{path}")
	direct = fetch(basic(serveFile, baseDir), f"/{path}")
	assert mounted.status == direct.status
	assert mounted.headers.get("Location") == direct.headers.get("Location")
	assert mounted.body == direct.body


IGNORE_INDEX_CASES = [
	("Good base dir", "", OK, INDEX),
	("Good base index", "index.html", MISSING, NOT_FOUND),
	("Good base file", "file.txt", OK, FILE),
	("Bad base file", "bad.txt", MISSING, NOT_FOUND),
	("Good subdir dir", "sub/", OK, SUB_INDEX),
	("Good subdir index", "sub/index.html", MISSING, NOT_FOUND),
	("Good subdir file", "sub/file.txt", OK, SUB_FILE),
]


@pytest.mark.parametrize("fileServer", FILE_SERVERS)
@pytest.mark.parametrize("name,path,status,contents", IGNORE_INDEX_CASES)
def test_ignoreIndex(baseDir, fileServer, name, path, status, contents):
	res = fetch(ignoreIndex(basic(fileServer, baseDir)), f"http://localhost/{path}")
	assert res.status == status, name
	assert res.text == contents, name


def test_ignoreIndex_does_not_call_inner_handler(baseDir):
	calls: list[str] = []

	def inner(sink, req):
		calls.append(req.path)
		basic(serveFile, baseDir)(sink, req)

	handler = ignoreIndex(inner)
	assert fetch(handler, "/sub/index.html").status == MISSING
	assert calls == []
	assert fetch(handler, "/sub/").status == OK
	assert calls == ["/sub/"]


def test_ignoreIndex_over_prefix(baseDir):
	handler = ignoreIndex(prefix(serveFile, baseDir, PREFIX))
	assert fetch(handler, PREFIX).text == INDEX
	assert fetch(handler, f"{PREFIX}index.html").text == NOT_FOUND


def test_ignoreIndex_follows_configured_index(baseDir, monkeypatch):
	monkeypatch.setattr(handlers, "INDEX", "file.txt")
	monkeypatch.setattr(files, "INDEX", "file.txt")
	handler = ignoreIndex(basic(serveFile, baseDir))
	assert fetch(handler, "/file.txt").status == MISSING
	assert fetch(handler, "/sub/file.txt").status == MISSING
	# The configured index is also what directories serve
	assert fetch(handler, "/sub/").text == SUB_FILE
	assert fetch(handler, "/index.html").text == INDEX


def test_file_with_trailing_slash_redirects(baseDir):
	for handler, url, location in [
		(basic(serveFile, baseDir), "/file.txt/", "../file.txt"),
		(basic(serveFile, baseDir), "/sub/file.txt/?a=1", "../file.txt?a=1"),
		(prefix(serveFile, baseDir, PREFIX), f"{PREFIX}sub/file.txt/", "../file.txt"),
	]:
		res = fetch(handler, url)
		assert res.status == REDIRECT, url
		assert res.header("Location") == location, url
		assert res.body == b"", url


def test_null_byte_in_path_is_answered(baseDir):
	for handler in (basic(serveFile, baseDir), basic(withLogging(serveFile), baseDir)):
		res = fetch(handler, "/file%00.txt")
		assert res.status == FAILED
		assert res.text == INTERNAL_ERROR
		assert res.header("X-Content-Type-Options") == "nosniff"


def test_index_redirect_is_relative(baseDir):
	res = fetch(basic(serveFile, baseDir), "/sub/index.html?a=1")
	assert res.status == REDIRECT
	assert res.header("Location") == "./?a=1"


def test_not_found_is_uniform(baseDir):
	responses = [
		fetch(basic(serveFile, baseDir), "/bad.txt"),
		fetch(prefix(serveFile, baseDir, PREFIX), "/file.txt"),
		fetch(ignoreIndex(basic(serveFile, baseDir)), "/index.html"),
		fetch(basic(serveFile, baseDir), "/../../etc/passwd"),
	]
	for res in responses:
		assert res.status == MISSING
		assert res.body == NOT_FOUND.encode()
		assert res.header("Content-Type") == "text/plain; charset=utf-8"


def test_traversal_outside_base(baseDir):
	served: list[str] = []

	def fileServer(sink, req, path):
		served.append(path)

	handler = basic(fileServer, f"{baseDir}sub/")
	res = fetch(handler, "/../file.txt")
	assert res.status == MISSING
	assert served == []


def test_resolvePath(baseDir):
	assert resolvePath(baseDir, "/") == baseDir
	assert resolvePath(baseDir, "/sub/file.txt") == f"{baseDir}sub/file.txt"
	assert resolvePath(baseDir.rstrip("/"), "/sub/") == f"{baseDir}sub/"
	assert resolvePath(baseDir, "/sub/../file.txt") == f"{baseDir}sub/../file.txt"
	assert resolvePath(baseDir, "/../www-other/file.txt") is None
	assert resolvePath(baseDir, "/..") is None


# EOF
