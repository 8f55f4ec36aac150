from .http.model import HTTPRequest
from .model import ResponseSink, THandler
from .services.files import notFound
from .utils.logging import info


class Router:
	"""Registers handlers by path pattern, and acts as a handler itself
	dispatching to the handler with the longest matching pattern. Patterns
	ending with a `/` match the whole subtree, the others match exactly, so
	that `/` is the catch-all route."""

	def __init__(self) -> None:
		self.routes: dict[str, THandler] = {}

	def register(self, pattern: str, handler: THandler) -> "Router":
		if not pattern.startswith("/"):
			raise ValueError(f"Route pattern must start with '/', got: {pattern!r}")
		existing = self.routes.get(pattern)
		if existing is handler:
			return self
		elif existing is not None:
			raise RuntimeError(f"A handler is already registered for: {pattern}")
		self.routes[pattern] = handler
		info("Registered route", Pattern=pattern)
		return self

	def match(self, path: str) -> THandler | None:
		if handler := self.routes.get(path):
			return handler
		matched: str | None = None
		for pattern in self.routes:
			if (
				pattern.endswith("/")
				and path.startswith(pattern)
				and (matched is None or len(pattern) > len(matched))
			):
				matched = pattern
		return None if matched is None else self.routes[matched]

	def __call__(self, sink: ResponseSink, request: HTTPRequest) -> None:
		handler = self.match(request.path)
		if handler is None:
			notFound(sink, request)
		else:
			handler(sink, request)


# EOF
