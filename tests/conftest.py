import io
from pathlib import Path

import pytest

from servefile import serveFile, withLogging
from servefile.utils import logging as servefile_logging

INDEX = "Space: the final frontier"
FILE = "These are the voyages of the starship Enterprise."
SUB_INDEX = "Its continuing mission:"
SUB_FILE = "To explore strange new worlds"
SUB_DEEP_INDEX = "To seek out new life and new civilizations"
SUB_DEEP_FILE = "To boldly go where no one has gone before"

NOT_FOUND = "404 page not found\n"

FILES: dict[str, str] = {
	"index.html": INDEX,
	"file.txt": FILE,
	"sub/index.html": SUB_INDEX,
	"sub/file.txt": SUB_FILE,
	"sub/deep/index.html": SUB_DEEP_INDEX,
	"sub/deep/file.txt": SUB_DEEP_FILE,
}

# Every handler test runs against the plain and the logged file server
FILE_SERVERS = [
	pytest.param(serveFile, id="plain"),
	pytest.param(withLogging(serveFile), id="logged"),
]


@pytest.fixture
def baseDir(tmp_path: Path) -> str:
	"""A base directory with the sample tree, given with a trailing slash."""
	for name, contents in FILES.items():
		path = tmp_path / "www" / name
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(contents)
	return f"{tmp_path / 'www'}/"


@pytest.fixture(autouse=True)
def quietLogs(monkeypatch: pytest.MonkeyPatch) -> io.StringIO:
	"""Captures the log output instead of writing it to stderr."""
	stream = io.StringIO()
	monkeypatch.setattr(servefile_logging, "ERR", stream)
	return stream


# EOF
