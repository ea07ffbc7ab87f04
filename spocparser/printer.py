"""Canonical printer for parsed policy files.

Output is built line by line with an explicit indentation counter.
Comments are not part of the syntax tree; they are looked up in a
:class:`CommentIndex` by the source offsets of the nodes and every
comment is printed exactly once.  Comments that never find a node are
flushed behind the toplevel definition they were found in.
"""

from __future__ import annotations

from typing import Callable, NotRequired, Optional, Sequence, TypedDict

from spocparser.comments import BLANK, CommentBlock, CommentIndex
from spocparser.logger import Logger
from spocparser.nodes import (
    AggAuto,
    Attribute,
    Complement,
    Element,
    Group,
    IntfAuto,
    IntfRef,
    Intersection,
    NamedRef,
    Node,
    ProtocolElement,
    Rule,
    Service,
    SimpleAuto,
    Toplevel,
    User,
    Value,
)
from spocparser.ordering import interface_name, protocol_text, sort_elements, sort_protocols
from spocparser.utils import resolve_config


class PrinterConfig(TypedDict):
    enable_logger: NotRequired[bool]


class PrinterConfigRequired(TypedDict):
    enable_logger: bool


DEFAULT_CONFIG: PrinterConfigRequired = {"enable_logger": False}


def short_name(elements: Sequence[Element]) -> str:
    """Text of a list that fits on the line of its opening bracket."""
    if len(elements) == 1:
        match elements[0]:
            case NamedRef(typ=typ, name=name):
                return f"{typ}:{name}"
            case User():
                return "user"
    return ""


class Printer:
    def __init__(self, config: Optional[PrinterConfig] = None):
        self.config = resolve_config(config or {}, DEFAULT_CONFIG)
        self.logger = Logger(config={"name": "Printer Logger", "is_enabled": self.config["enable_logger"]}).logger
        self.lines: list[str] = []
        self.indent = 0
        self.comments = CommentIndex("", [])
        self.consumed: set[int] = set()

    # Output ------------------------------------------------------------------
    def print(self, line: str) -> None:
        self.lines.append(" " * self.indent + line if line else "")

    def empty_line(self) -> None:
        if self.lines and self.lines[-1] != "":
            self.lines.append("")

    # Comments ----------------------------------------------------------------
    def trailing_comment_at(self, pos: int, skip: str) -> str:
        comment = self.comments.trailing(pos, skip)
        if comment is None or comment.start in self.consumed:
            return ""
        self.consumed.add(comment.start)
        return " " + comment.text

    def trailing_comment(self, node: Node, skip: str) -> str:
        return self.trailing_comment_at(node.end, skip)

    def print_comments(self, block: CommentBlock) -> None:
        blank = False
        printed = False
        for comment in block:
            if comment is BLANK:
                blank = printed
                continue
            if comment.start in self.consumed:
                continue
            if blank:
                self.print("")
                blank = False
            self.print(comment.text)
            self.consumed.add(comment.start)
            printed = True
        if blank:
            self.print("")

    def pre_comment(self, node: Node, skip: str) -> None:
        self.print_comments(self.comments.leading(node.start, skip))

    def flush_orphans(self, limit: int) -> None:
        for comment in self.comments.before(limit):
            if comment.start in self.consumed:
                continue
            self.logger.debug(f"Orphan comment at line {comment.line}")
            if self.lines and self.lines[-1] != "" and self.comments.is_blank(comment.line - 1):
                self.lines.append("")
            self.lines.append(comment.text)
            self.consumed.add(comment.start)

    # Elements ----------------------------------------------------------------
    def sub_elements(self, p1: str, p2: str, elements: list[Element], stop: str) -> None:
        if name := short_name(elements):
            self.print(p1 + p2 + name + stop)
        else:
            # A filter clause like "ip = ... & " leaves a trailing space.
            self.print((p1 + p2).rstrip())
            ind = len(p1)
            self.indent += ind
            self.element_list(elements, stop)
            self.indent -= ind

    def element(self, pre: str, el: Element, post: str) -> None:
        match el:
            case NamedRef():
                self.print(f"{pre}{el.typ}:{el.name}{post}")
            case IntfRef():
                self.print(f"{pre}{el.typ}:{interface_name(el)}{post}")
            case SimpleAuto():
                self.sub_elements(pre, f"{el.typ}:[", el.elements, "]" + post)
            case AggAuto():
                p2 = f"{el.typ}:["
                if el.net is not None:
                    p2 += f"ip = {el.net} & "
                self.sub_elements(pre, p2, el.elements, "]" + post)
            case IntfAuto():
                p2 = f"{el.typ}:["
                if el.managed:
                    p2 += "managed & "
                self.sub_elements(pre, p2, el.elements, f"].[{el.selector}]{post}")
            case Intersection():
                self.intersection(pre, el.elements, post)
            case Complement():
                self.element(pre + "! ", el.element, post)
            case User():
                self.print(f"{pre}user{post}")
            case _:
                raise ValueError(f"Unknown element: {type(el).__name__}")

    def intersection(self, pre: str, elements: list[Element], post: str) -> None:
        # The first element already got its pre-comment from the enclosing list.
        first = elements[0]
        self.element(pre, first, self.trailing_comment(first, "&!"))
        ind = len(pre)
        self.indent += ind
        for el in elements[1:]:
            prefix = "&"
            if isinstance(el, Complement):
                prefix += "!"
                el = el.element
            prefix += " "
            self.pre_comment(el, "&!")
            self.element(prefix, el, self.trailing_comment(el, "&!,;"))
        self.print(post)
        self.indent -= ind

    def element_post(self, el: Element, post: str) -> str:
        # An intersection prints the comments of its elements itself.
        if isinstance(el, Intersection):
            return post
        return post + self.trailing_comment(el, ",;")

    def element_list(self, elements: list[Element], stop: str, end: int | None = None) -> None:
        self.indent += 1
        for el in sort_elements(elements):
            self.pre_comment(el, ",")
            self.element("", el, self.element_post(el, ","))
        self.indent -= 1
        if end is not None:
            stop += self.trailing_comment_at(end, "")
        self.print(stop)

    def named_list(
        self, name: str, items: list, show: Callable[[str, Node, str], None], start: int | None = None
    ) -> None:
        first, rest = items[0], items[1:]
        if start is not None:
            self.print_comments(self.comments.leading(start, ""))
        # Comments above the first value move above the name.
        self.pre_comment(first, ",")

        # Put first value on same line with name.
        pre = name + " = "
        ind = len(pre)
        post = "," if rest else ";"
        show(pre, first, self.element_post(first, post))

        # Show other lines with same indentation as first line.
        if rest:
            self.indent += ind
            for item in rest:
                self.pre_comment(item, ",")
                show("", item, self.element_post(item, ","))
            self.print(";")
            self.indent -= ind

    # Service parts -----------------------------------------------------------
    def value(self, pre: str, value: Value, post: str) -> None:
        self.print(pre + value.value + post)

    def protocol(self, pre: str, prt: ProtocolElement, post: str) -> None:
        self.print(pre + protocol_text(prt) + post)

    def attribute(self, attr: Attribute) -> None:
        self.pre_comment(attr, "")
        # Short attribute without values.
        if not attr.values:
            self.print(attr.name + ";" + self.trailing_comment(attr, ",;"))
            return
        self.named_list(attr.name, attr.values, self.value)

    def rule(self, rule: Rule) -> None:
        self.pre_comment(rule, "")
        action = "deny  " if rule.deny else "permit"
        ind = len(action) + 1
        self.named_list(action + " src", sort_elements(rule.src), self.element)
        self.indent += ind
        self.named_list("dst", sort_elements(rule.dst), self.element, rule.dst_start)
        self.named_list("prt", sort_protocols(rule.prt), self.protocol, rule.prt_start)
        if rule.log is not None:
            self.attribute(rule.log)
        self.indent -= ind

    # Toplevel definitions ----------------------------------------------------
    def group(self, group: Group) -> None:
        if group.elements:
            self.element_list(group.elements, ";", group.end)
        else:
            self.print(";" + self.trailing_comment(group, ""))

    def service(self, service: Service) -> None:
        self.indent += 1
        self.empty_line()
        for attr in service.attributes:
            self.attribute(attr)
        self.empty_line()
        self.print_comments(self.comments.leading(service.user_start, ""))
        if service.foreach:
            self.print("user = foreach")
            self.element_list(service.user, ";")
        else:
            self.named_list("user", sort_elements(service.user), self.element)
        for rule in service.rules:
            self.rule(rule)
        self.indent -= 1
        self.print("}" + self.trailing_comment(service, ""))

    def toplevel(self, toplevel: Toplevel) -> None:
        sep = " =" if isinstance(toplevel, Group) else " = {"
        header_end = toplevel.start + len(toplevel.name)
        self.print(toplevel.name + sep + self.trailing_comment_at(header_end, sep))

        if description := toplevel.description:
            self.indent += 1
            self.pre_comment(description, "")
            text = description.text.strip()
            self.print(f"description = {text}" if text else "description =")
            self.indent -= 1
            self.empty_line()

        match toplevel:
            case Group():
                self.group(toplevel)
            case Service():
                self.service(toplevel)
            case _:
                raise ValueError(f"Unknown type: {type(toplevel).__name__}")

    def render(
        self,
        toplevels: Sequence[Toplevel],
        source: bytes | str,
        comments: CommentIndex | None = None,
    ) -> str:
        if isinstance(source, bytes):
            source = source.decode("utf-8")
        self.comments = comments if comments is not None else CommentIndex.scan(source)
        self.consumed = set()
        self.lines = []
        self.indent = 0
        self.logger.info(f"Rendering {len(toplevels)} definition(s)")

        prev_end = None
        for toplevel in toplevels:
            block = self.comments.between_toplevels(prev_end, toplevel.start)
            if prev_end is not None:
                first = next((c for c in block if c is not BLANK), None)
                self.flush_orphans(first.start if first else toplevel.start)
                # Add empty line between definitions.
                self.print("")
            self.print_comments(block)
            self.logger.debug(f"Printing {toplevel.name}")
            self.toplevel(toplevel)
            prev_end = toplevel.end
        self.flush_orphans(len(source) + 1)

        if not self.lines:
            return ""
        return "\n".join(self.lines) + "\n"


def render(toplevels: Sequence[Toplevel], source: bytes | str, comments: CommentIndex | None = None) -> str:
    return Printer().render(toplevels, source, comments)
