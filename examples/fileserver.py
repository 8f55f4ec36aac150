"""
Static File Server Example

Serves the current directory under `/static/`, logging every served file
and hiding `index.html` when it is requested by name.

Usage:
    python fileserver.py

Test with:
    http://localhost:8000/static/            # Directory index or listing
    http://localhost:8000/static/README.md   # A specific file
    http://localhost:8000/static/index.html  # Not found
"""

from servefile import ignoreIndex, listening, prefix, serveFile, withLogging
from servefile.utils.logging import info

if __name__ == "__main__":
	info("Serving files from current working directory")
	handler = ignoreIndex(prefix(withLogging(serveFile), ".", "/static/"))
	listening()("0.0.0.0:8000", handler)  # nosec: B104

# EOF
