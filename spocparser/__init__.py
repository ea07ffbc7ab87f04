"""Parser and canonical printer for Netspoc policy files."""

from .nodes import (
    AggAuto,
    Attribute,
    Complement,
    Description,
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
    SimpleProtocol,
    Toplevel,
    User,
    Value,
)
from .scanner import ParseException, Scanner, ScannerConfig, Token
from .comments import Comment, CommentIndex
from .document import PolicyDocument
from .parser import Parser, ParserConfig, parse_file
from .printer import Printer, PrinterConfig, render

__all__ = [
    "AggAuto",
    "Attribute",
    "Complement",
    "Description",
    "Element",
    "Group",
    "IntfAuto",
    "IntfRef",
    "Intersection",
    "NamedRef",
    "Node",
    "ProtocolElement",
    "Rule",
    "Service",
    "SimpleAuto",
    "SimpleProtocol",
    "Toplevel",
    "User",
    "Value",
    "ParseException",
    "Scanner",
    "ScannerConfig",
    "Token",
    "Comment",
    "CommentIndex",
    "PolicyDocument",
    "Parser",
    "ParserConfig",
    "parse_file",
    "Printer",
    "PrinterConfig",
    "render",
]
