import argparse
import sys

from .config import HOST, LOG_REQUESTS, PORT
from .decorators import withLogging
from .handlers import basic, ignoreIndex, prefix
from .listeners import Primitives, listening, tlsListening
from .model import TFileServer, THandler
from .server import ServerOptions
from .services.files import serveFile
from .utils.logging import error, info


def main(args: list[str] | None = None) -> int:
	parser = argparse.ArgumentParser(
		prog="servefile", description="Serves static files over HTTP(S)"
	)
	parser.add_argument("path", nargs="?", default=".", help="Directory to serve")
	parser.add_argument("--prefix", help="URL prefix the files are mounted under")
	parser.add_argument("--host", default=HOST, help="Interface to bind")
	parser.add_argument("--port", type=int, default=PORT, help="Port to bind")
	parser.add_argument("--cert", help="TLS certificate (PEM)")
	parser.add_argument("--key", help="TLS private key (PEM)")
	parser.add_argument(
		"--ignore-index",
		action="store_true",
		help="Answer not found when the index document is requested by name",
	)
	parser.add_argument(
		"--no-log", action="store_true", help="Don't log served files"
	)
	opts = parser.parse_args(args)
	if bool(opts.cert) != bool(opts.key):
		parser.error("--cert and --key must be given together")

	fileServer: TFileServer = (
		serveFile if opts.no_log or not LOG_REQUESTS else withLogging(serveFile)
	)
	handler: THandler = (
		prefix(fileServer, opts.path, opts.prefix)
		if opts.prefix
		else basic(fileServer, opts.path)
	)
	if opts.ignore_index:
		handler = ignoreIndex(handler)
	# Served files are already logged by the file server
	primitives = Primitives.Make(options=ServerOptions(logRequests=False))
	listener = (
		tlsListening(opts.cert, opts.key, primitives)
		if opts.cert
		else listening(primitives)
	)
	binding: str = f"{opts.host}:{opts.port}"
	info("Serving files", Path=opts.path, Prefix=opts.prefix, Binding=binding)
	try:
		listener(binding, handler)
	except (OSError, ValueError) as e:
		error(f"Could not serve on {binding}: {e}", "BIND")
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
