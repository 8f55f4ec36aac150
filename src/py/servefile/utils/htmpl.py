from typing import (
    Callable,
    Iterable,
    Iterator,
    LiteralString,
    Optional,
    Union,
    cast,
)
from mypy_extensions import KwArg, VarArg

# --
# HTMPL defines functions to create small HTML documents, like directory
# listings, without a template engine.

HTML_EMPTY: list[LiteralString] = "br hr img input link meta".split()
HTML_ESCAPED = str.maketrans(
    {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;"}
)
HTML_QUOTED = str.maketrans({"&": "&amp;", '"': "&quot;"})


def escape(text: str) -> str:
    return text.translate(HTML_ESCAPED)


def quoted(text: Optional[str]) -> str:
    return text.translate(HTML_QUOTED) if text else ""


TNodeContent = Union["Node", str, int, float]
TAttributeContent = str | bool | int | float | None


class Node:
    __slots__ = ["name", "attributes", "children"]

    def __init__(
        self,
        name: str,
        children: Optional[Iterable[TNodeContent]] = None,
        attributes: Optional[dict[str, TAttributeContent]] = None,
    ):
        self.name = name
        self.attributes: dict[str, TAttributeContent] = attributes or {}
        self.children: list[TNodeContent] = (
            [text(_) if isinstance(_, str) else _ for _ in children]
            if children
            else []
        )

    def iterHTML(self) -> Iterator[str]:
        if self.name == "#text":
            yield escape(str(self.attributes.get("#value") or ""))
            return
        yield f"<{self.name}"
        for k, v in self.attributes.items():
            if v is True:
                yield f" {k}"
            elif v is not None and v is not False:
                yield f' {k}="{quoted(str(v))}"'
        if self.name in HTML_EMPTY:
            yield ">"
        else:
            yield ">"
            for _ in self.children:
                if isinstance(_, Node):
                    yield from _.iterHTML()
                else:
                    yield escape(str(_))
            yield f"</{self.name}>"

    def __str__(self) -> str:
        return "".join(self.iterHTML())


def text(value: str) -> Node:
    return Node("#text", attributes={"#value": value})


NodeFactory = Callable[
    [
        VarArg(TNodeContent | list[TNodeContent]),
        KwArg(TAttributeContent),
    ],
    Node,
]


def nodeFactory(name: str) -> NodeFactory:
    def f(
        *children: TNodeContent | list[TNodeContent], **attributes: TAttributeContent
    ) -> Node:
        content: list[TNodeContent] = []
        for _ in children:
            if isinstance(_, list):
                content += _
            else:
                content.append(_)
        # `_` stands for `class`, which is a keyword
        attrs: dict[str, TAttributeContent] = {
            ("class" if k == "_" else k): v for k, v in attributes.items()
        }
        return Node(name, content, attrs)

    f.__name__ = name
    return cast(NodeFactory, f)


HTML_TAGS: list[LiteralString] = (
    """\
a body br code div h1 head header hr html li link main meta nav p pre section
span style table tbody td th thead title tr ul\
""".split()
)


class Markup:
    __slots__ = ["_factories"]

    def __init__(self, factories: dict[str, NodeFactory]):
        self._factories: dict[str, NodeFactory] = factories

    def __getattr__(self, name: str) -> NodeFactory:
        factories = self._factories
        if name not in factories:
            raise AttributeError(
                f"No tag {name}, pick one of {','.join(factories.keys())}"
            )
        return factories[name]


H: Markup = Markup({_: nodeFactory(_) for _ in HTML_TAGS})


def html(*nodes: Node, doctype: str | None = None) -> Iterator[str]:
    if doctype:
        yield f"<!DOCTYPE {doctype}>\n"
    for _ in nodes:
        yield from _.iterHTML()


# EOF
