from typing import Callable, NamedTuple

from .model import THandler, TListener
from .routing import Router
from .server import OPTIONS, ServerOptions, listenAndServe, listenAndServeTLS

# The route the listeners register their handler on
CATCH_ALL: str = "/"


class Primitives(NamedTuple):
	"""The primitives a listener relies on to register its handler and to
	bind the server. A `None` handler given to `listenAndServe` and
	`listenAndServeTLS` means the routes registered with `setHandler`."""

	setHandler: Callable[[str, THandler], object]
	listenAndServe: Callable[[str, THandler | None], None]
	listenAndServeTLS: Callable[[str, str, str, THandler | None], None]

	@staticmethod
	def Make(
		router: Router | None = None, *, options: ServerOptions = OPTIONS
	) -> "Primitives":
		"""Binds the actual server functions to the given router, or to
		a new one."""
		mux: Router = Router() if router is None else router

		def serve(binding: str, handler: THandler | None) -> None:
			listenAndServe(
				binding, mux if handler is None else handler, options=options
			)

		def serveTLS(
			binding: str, certPath: str, keyPath: str, handler: THandler | None
		) -> None:
			listenAndServeTLS(
				binding,
				certPath,
				keyPath,
				mux if handler is None else handler,
				options=options,
			)

		return Primitives(
			setHandler=mux.register, listenAndServe=serve, listenAndServeTLS=serveTLS
		)


def listening(primitives: Primitives | None = None) -> TListener:
	"""Returns a listener that serves its handler over plain HTTP. Whatever
	the underlying primitives raise is raised as is, without retrying."""
	p: Primitives = Primitives.Make() if primitives is None else primitives

	def listener(binding: str, handler: THandler) -> None:
		p.setHandler(CATCH_ALL, handler)
		p.listenAndServe(binding, None)

	return listener


def tlsListening(
	certPath: str, keyPath: str, primitives: Primitives | None = None
) -> TListener:
	"""Like `listening`, but serves over TLS with the given certificate and
	key files."""
	p: Primitives = Primitives.Make() if primitives is None else primitives

	def listener(binding: str, handler: THandler) -> None:
		p.setHandler(CATCH_ALL, handler)
		p.listenAndServeTLS(binding, certPath, keyPath, None)

	return listener


# EOF
