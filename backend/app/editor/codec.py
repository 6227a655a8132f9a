"""Markdown codec for structured editor documents.

`encode` serializes a document to markdown; `decode` renders markdown to HTML
with Python-Markdown and parses the HTML tree back into the document schema.
"""

import re
from collections.abc import Iterable, Sequence

import markdown
from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from backend.app.editor.schema import (
    Mark,
    Node,
    code_block,
    doc,
    hard_break,
    image,
    mark,
    paragraph,
    text_node,
)

MARKDOWN_EXTENSIONS = ["fenced_code", "sane_lists"]

LIST_TYPES = ("bullet_list", "ordered_list")

# Python-Markdown treats four spaces as one nesting level.
INDENT = "    "

_ESCAPE_RE = re.compile(r"([\\`*_\[\]])")
_LINE_START_RE = re.compile(r"^(\s*)([#>+\-])")
_ORDERED_START_RE = re.compile(r"^(\s*\d+)\.(\s|$)")
_LEADING_SPACE_RE = re.compile(r"^ +(?=\S)")
_CLOSING_HASHES_RE = re.compile(r"#+$")


# -- encode ---------------------------------------------------------------


def encode(document: Node) -> str:
    """Serialize a document to markdown."""
    return _render_blocks(document.content, nested=False)


def _render_blocks(blocks: Sequence[Node], nested: bool) -> str:
    parts: list[str] = []
    previous: Node | None = None
    for block in blocks:
        if previous is not None and previous.type == block.type and block.type in LIST_TYPES:
            # Keeps two adjacent lists of the same type from merging
            parts.append("<!-- -->")
        parts.append(_render_block(block, nested))
        previous = block
    return "\n\n".join(parts)


def _render_block(node: Node, nested: bool) -> str:
    if node.type == "paragraph":
        return _render_inline(node.content)
    if node.type == "heading":
        level = min(max(int(node.attrs.get("level", 1)), 1), 6)
        # A trailing run of # would be read as the closing sequence
        text = _CLOSING_HASHES_RE.sub(lambda m: "\\#" * len(m.group()), _render_inline(node.content))
        return "#" * level + " " + text
    if node.type == "horizontal_rule":
        return "---"
    if node.type == "code_block":
        return _render_code_block(node, nested)
    if node.type == "blockquote":
        inner = _render_blocks(node.content, nested=True)
        return "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))
    if node.type in LIST_TYPES:
        return _render_list(node)
    raise ValueError(f"Cannot serialize node type: {node.type}")


def _render_code_block(node: Node, nested: bool) -> str:
    code = node.text_content
    if nested:
        # Fences are only recognized at the start of a line; use indented code inside containers
        return "\n".join(INDENT + line if line else "" for line in code.split("\n"))

    fence = "```"
    while fence in code:
        fence += "`"
    if not code:
        return f"{fence}{node.attrs.get('params') or ''}\n{fence}"
    return f"{fence}{node.attrs.get('params') or ''}\n{code}\n{fence}"


def _render_list(node: Node) -> str:
    ordered = node.type == "ordered_list"
    start = int(node.attrs.get("order", 1)) if ordered else 1
    tight = all(len(item.content) == 1 for item in node.content)

    items = []
    for index, item in enumerate(node.content):
        marker = f"{start + index}. " if ordered else "* "
        lines = _render_blocks(item.content, nested=True).split("\n")
        rest = "".join("\n" + (INDENT + line if line else "") for line in lines[1:])
        items.append(marker + lines[0] + rest)
    return ("\n" if tight else "\n\n").join(items)


def _render_inline(nodes: Iterable[Node]) -> str:
    out = []
    for node in nodes:
        if node.type == "hard_break":
            out.append("  \n")
        elif node.type == "image":
            out.append(_wrap_marks(_render_image(node), node.marks))
        else:
            out.append(_render_text(node))
    rendered = "".join(out)
    return "\n".join(_escape_line_start(line) for line in rendered.split("\n"))


def _render_image(node: Node) -> str:
    alt = _escape(node.attrs.get("alt") or "")
    title = node.attrs.get("title")
    suffix = f' "{title}"' if title else ""
    return f"![{alt}]({node.attrs.get('src', '')}{suffix})"


def _render_text(node: Node) -> str:
    value = node.text or ""
    if any(m.type == "code" for m in node.marks):
        inner = _code_span(value)
    else:
        inner = _escape(value)
    return _wrap_marks(inner, node.marks)


def _wrap_marks(inner: str, marks: tuple[Mark, ...]) -> str:
    core = inner.strip(" ")
    if not core:
        return inner
    leading = inner[: len(inner) - len(inner.lstrip(" "))]
    trailing = inner[len(inner.rstrip(" ")) :]

    for m in reversed(marks):
        if m.type == "strong":
            core = f"**{core}**"
        elif m.type == "em":
            core = f"*{core}*"
        elif m.type == "link":
            title = m.attr("title")
            suffix = f' "{title}"' if title else ""
            core = f"[{core}]({m.attr('href', '')}{suffix})"
    return leading + core + trailing


def _code_span(value: str) -> str:
    longest = max((len(run) for run in re.findall(r"`+", value)), default=0)
    ticks = "`" * (longest + 1)
    if value.startswith("`") or value.endswith("`"):
        value = f" {value} "
    return f"{ticks}{value}{ticks}"


def _escape(value: str) -> str:
    # Markdown expands tabs to spaces before parsing
    value = value.replace("&", "&amp;").replace("<", "&lt;").replace("\t", "&#9;")
    return _ESCAPE_RE.sub(r"\\\1", value)


def _escape_line_start(line: str) -> str:
    line = _LINE_START_RE.sub(r"\1\\\2", line)
    line = _ORDERED_START_RE.sub(r"\1\\.\2", line)
    # Leading spaces are stripped, or read as an indented code block
    return _LEADING_SPACE_RE.sub(lambda m: "&#32;" * len(m.group()), line)


# -- decode ---------------------------------------------------------------

_INLINE_TAGS = {"em", "i", "strong", "b", "code", "a", "br", "img", "span", "del", "s", "sub", "sup", "u"}
_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}


def decode(markup: str) -> Node:
    """Parse markdown into a document; empty input yields one empty paragraph."""
    html = markdown.markdown(markup or "", extensions=MARKDOWN_EXTENSIONS)
    soup = BeautifulSoup(html, "html.parser")
    blocks = _parse_blocks(soup.contents)
    return doc(*(blocks or [paragraph()]))


def _parse_blocks(elements: Iterable) -> list[Node]:
    blocks: list[Node] = []
    inline_run: list = []

    def flush() -> None:
        nodes = _parse_inline(inline_run)
        if nodes:
            blocks.append(Node("paragraph", content=nodes))
        inline_run.clear()

    for element in elements:
        if isinstance(element, Comment):
            continue
        if isinstance(element, NavigableString) or (isinstance(element, Tag) and element.name in _INLINE_TAGS):
            inline_run.append(element)
            continue
        flush()
        blocks.extend(_parse_block(element))
    flush()
    return blocks


def _parse_block(element: Tag) -> list[Node]:
    name = element.name
    if name == "p":
        return [Node("paragraph", content=_parse_inline(element.contents))]
    if name in _HEADING_TAGS:
        return [Node("heading", {"level": int(name[1])}, _parse_inline(element.contents))]
    if name == "hr":
        return [Node("horizontal_rule")]
    if name == "pre":
        return [_parse_code_block(element)]
    if name == "blockquote":
        return [Node("blockquote", content=_parse_blocks(element.contents) or [paragraph()])]
    if name in ("ul", "ol"):
        items = [_parse_list_item(li) for li in element.find_all("li", recursive=False)]
        if not items:
            return []
        if name == "ol":
            return [Node("ordered_list", {"order": int(element.get("start", 1))}, items)]
        return [Node("bullet_list", content=items)]
    return _parse_blocks(element.contents)


def _parse_code_block(element: Tag) -> Node:
    code = element.find("code")
    source = code if isinstance(code, Tag) else element
    text = source.get_text()
    if text.endswith("\n"):
        text = text[:-1]

    params = ""
    for cls in source.get("class") or []:
        if cls.startswith("language-"):
            params = cls[len("language-") :]
            break
    return code_block(text, params)


def _parse_list_item(element: Tag) -> Node:
    blocks = _parse_blocks(element.contents)
    if not blocks or blocks[0].type != "paragraph":
        blocks.insert(0, paragraph())
    return Node("list_item", content=blocks)


def _inline_mark(element: Tag) -> Mark | None:
    name = element.name
    if name in ("em", "i"):
        return mark("em")
    if name in ("strong", "b"):
        return mark("strong")
    if name == "code":
        return mark("code")
    if name == "a":
        return mark("link", href=element.get("href", ""), title=element.get("title"))
    return None


def _parse_inline(elements: Iterable, marks: tuple[Mark, ...] = ()) -> list[Node]:
    out: list[Node] = []
    _collect_inline(elements, marks, out)

    # Trailing whitespace of a block is not content
    while out and out[-1].is_text and (out[-1].text or "").endswith(" "):
        last = out.pop()
        stripped = (last.text or "").rstrip(" ")
        if stripped:
            out.append(text_node(stripped, last.marks))
            break
    return out


def _collect_inline(elements: Iterable, marks: tuple[Mark, ...], out: list[Node]) -> None:
    for element in elements:
        if isinstance(element, Comment):
            continue
        if isinstance(element, NavigableString):
            _append_text(out, str(element), marks)
        elif element.name == "br":
            out.append(hard_break())
        elif element.name == "img":
            out.append(image(element.get("src", ""), element.get("alt"), element.get("title")))
        else:
            extra = _inline_mark(element)
            _collect_inline(element.contents, marks + (extra,) if extra else marks, out)


def _append_text(out: list[Node], value: str, marks: tuple[Mark, ...]) -> None:
    # Soft line breaks read as spaces; other whitespace is content
    if value.startswith("\n"):
        previous = out[-1] if out else None
        if (
            previous is None
            or previous.type == "hard_break"
            or (previous.is_text and (previous.text or "").endswith(" "))
        ):
            value = value[1:]
    value = value.replace("\n", " ")
    if value:
        out.append(text_node(value, marks))
