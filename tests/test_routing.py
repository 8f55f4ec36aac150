import pytest

from servefile import Router
from servefile.recorder import ResponseRecorder, request


def responding(text: str):
	def handler(sink, req):
		sink.send(req.respond(text))

	return handler


def get(router: Router, path: str) -> ResponseRecorder:
	sink = ResponseRecorder()
	router(sink, request("GET", path))
	return sink


def test_catch_all():
	router = Router().register("/", responding("root"))
	assert get(router, "/").text == "root"
	assert get(router, "/any/thing").text == "root"


def test_longest_pattern_wins():
	router = (
		Router()
		.register("/", responding("root"))
		.register("/static/", responding("static"))
		.register("/static/img/", responding("img"))
		.register("/favicon.ico", responding("icon"))
	)
	assert get(router, "/static/a.css").text == "static"
	assert get(router, "/static/img/a.png").text == "img"
	assert get(router, "/favicon.ico").text == "icon"
	assert get(router, "/favicon.ico/more").text == "root"


def test_no_route_is_not_found():
	router = Router().register("/static/", responding("static"))
	res = get(router, "/other")
	assert res.status == 404
	assert res.text == "404 page not found\n"


def test_register_conflicts():
	handler = responding("a")
	router = Router().register("/", handler)
	# Registering the same handler again is harmless
	router.register("/", handler)
	with pytest.raises(RuntimeError):
		router.register("/", responding("b"))
	with pytest.raises(ValueError):
		router.register("static/", handler)


# EOF
