from servefile.http.model import HTTPHeaders, HTTPProcessingStatus, HTTPRequest
from servefile.http.parser import MAX_BODY, HTTPParser, LineParser, parseQuery


def requests(*chunks: bytes) -> list[HTTPRequest]:
	parser = HTTPParser()
	return [
		atom
		for chunk in chunks
		for atom in parser.feed(chunk)
		if isinstance(atom, HTTPRequest)
	]


def test_line_parser():
	parser = LineParser()
	lines: list[bytes] = []
	for chunk in [b"GET /time/5 HTTP/1.1\r\nHost: 127.0.0.1\r", b"\nConnection: close", b"\r\n\r\n"]:
		offset = 0
		while offset < len(chunk):
			line, read = parser.feed(chunk, offset)
			offset += read
			if line is not None:
				lines.append(line)
	assert lines == [b"GET /time/5 HTTP/1.1", b"Host: 127.0.0.1", b"Connection: close", b""]


def test_request():
	(req,) = requests(b"GET /sub/a%20b.txt?x=1&y HTTP/1.1\r\nhost: localhost\r\n\r\n")
	assert req.method == "GET"
	assert req.path == "/sub/a b.txt"
	assert req.query == {"x": "1", "y": ""}
	assert req.rawQuery == "x=1&y"
	assert req.protocol == "HTTP/1.1"
	assert req.header("Host") == "localhost"


def test_request_split_across_chunks():
	(req,) = requests(b"GE", b"T /file.txt HT", b"TP/1.0\r\nA: b\r", b"\n\r\n")
	assert req.path == "/file.txt"
	assert req.protocol == "HTTP/1.0"
	assert req.header("a") == "b"


def test_pipelined_requests():
	reqs = requests(
		b"GET /a HTTP/1.1\r\n\r\nGET /b HTTP/1.1\r\n\r\nHEAD /c HTTP/1.1\r\n\r\n"
	)
	assert [(_.method, _.path) for _ in reqs] == [
		("GET", "/a"),
		("GET", "/b"),
		("HEAD", "/c"),
	]


def test_request_with_body():
	reqs = requests(
		b"POST /a HTTP/1.1\r\nContent-Length: 5\r\n\r\nhel",
		b"loGET /b HTTP/1.1\r\n\r\n",
	)
	assert [_.path for _ in reqs] == ["/a", "/b"]
	assert reqs[0].body and reqs[0].body.raw == b"hello"


def test_bad_request_line():
	parser = HTTPParser()
	atoms = list(parser.feed(b"NOT A REQUEST LINE\r\n\r\n"))
	assert HTTPProcessingStatus.BadFormat in atoms


def test_large_body_is_rejected():
	parser = HTTPParser()
	atoms = list(
		parser.feed(
			f"POST /a HTTP/1.1\r\nContent-Length: {MAX_BODY + 1}\r\n\r\n".encode()
		)
	)
	assert atoms[-1] is HTTPProcessingStatus.BadFormat
	assert not any(isinstance(_, HTTPRequest) for _ in atoms)
	# The parser is ready for a new request afterwards
	assert [
		_.path
		for _ in parser.feed(b"GET /b HTTP/1.1\r\n\r\n")
		if isinstance(_, HTTPRequest)
	] == ["/b"]


def test_body_at_limit_is_accepted():
	body = b"x" * MAX_BODY
	(req,) = requests(
		f"POST /a HTTP/1.1\r\nContent-Length: {MAX_BODY}\r\n\r\n".encode(), body
	)
	assert req.body and req.body.raw == body


def test_parseQuery():
	assert parseQuery("") == {}
	assert parseQuery("a=1&b=2=3&c") == {"a": "1", "b": "2=3", "c": ""}


def test_headers_make():
	headers = HTTPHeaders.Make({"content-type": "text/plain", "content-length": "12"})
	assert headers.headers == {"Content-Type": "text/plain", "Content-Length": "12"}
	assert headers.contentLength == 12


# EOF
