from .http.model import HTTPRequest, HTTPResponse  # NOQA: F401
from .model import ResponseSink, THandler, TFileServer, TListener  # NOQA: F401
from .services.files import serveFile  # NOQA: F401
from .handlers import basic, prefix, ignoreIndex  # NOQA: F401
from .decorators import withLogging  # NOQA: F401
from .listeners import Primitives, listening, tlsListening  # NOQA: F401
from .routing import Router  # NOQA: F401


# EOF
