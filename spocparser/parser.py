from typing import Callable, NoReturn, NotRequired, Optional, TypedDict, TypeVar
from ipaddress import IPv4Interface, IPv6Interface, ip_address, ip_interface
from spocparser.comments import CommentIndex
from spocparser.document import PolicyDocument
from spocparser.logger import Logger
from spocparser.nodes import (
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
    ProtocolElement,
    Rule,
    Service,
    SimpleAuto,
    SimpleProtocol,
    Toplevel,
    User,
    Value,
)
from spocparser.scanner import DELIMITERS, ParseException, Scanner, Token
from spocparser.utils import resolve_config

__all__ = ["ParseException", "Parser", "ParserConfig", "parse_file"]

PROTOCOLS = {"tcp", "udp", "icmp", "proto"}

T = TypeVar("T")


def is_simple_name(name: str) -> bool:
    return name != "" and not any(char in ".:/@" for char in name)


def is_domain(name: str) -> bool:
    return name != "" and all(is_simple_name(part) for part in name.split("."))


def is_network_name(name: str) -> bool:
    bridge, sep, rest = name.partition("/")
    return (not sep or is_simple_name(bridge)) and is_simple_name(rest if sep else bridge)


def is_router_name(name: str) -> bool:
    router, sep, vrf = name.partition("@")
    return (not sep or is_simple_name(vrf)) and is_simple_name(router)


def is_hostname(name: str) -> bool:
    if name.startswith("id:"):
        local, sep, domain = name[3:].partition("@")
        # "id:@domain" has no local part.
        return bool(sep) and (local == "" or is_domain(local)) and is_domain(domain)
    return is_simple_name(name)


class ParserConfig(TypedDict):
    parse: NotRequired[bool]
    enable_logger: NotRequired[bool]


class ParserConfigRequired(TypedDict):
    parse: bool
    enable_logger: bool


DEFAULT_CONFIG: ParserConfigRequired = {"parse": True, "enable_logger": False}


class Parser:
    """Recursive descent parser with one token of look-ahead.

    Parsing stops at the first error by raising :class:`ParseException`;
    no partial result is kept.
    """

    def __init__(self, source: bytes | str, fname: str = "", config: Optional[ParserConfig] = None):
        self.config = resolve_config(config or {}, DEFAULT_CONFIG)
        self.logger = Logger(config={"name": "Parser Logger", "is_enabled": self.config["enable_logger"]}).logger
        self.fname = fname
        self.scanner = Scanner(source, fname, config={"enable_logger": self.config["enable_logger"]})
        self.current_token = self.scanner.token()
        # Offset just behind the last consumed token.
        self.last_end = 0
        self.toplevels: list[Toplevel] = []
        self.logger.info("Parser initialized")
        if self.config["parse"]:
            self.toplevels = self.parse_file()

    @property
    def tok(self) -> str:
        return self.current_token.value

    @property
    def pos(self) -> int:
        return self.current_token.pos

    @property
    def comments(self) -> CommentIndex:
        return CommentIndex.from_scanner(self.scanner)

    def advance(self) -> None:
        self.last_end = self.current_token.end
        self.current_token = self.scanner.token()

    def consume(self, expected: Optional[str] = None) -> Token:
        token = self.current_token
        if expected is not None:
            self.expect(expected)
        else:
            self.advance()
        self.logger.debug(f"Consumed token {token}")
        return token

    def syntax_error(self, message: str) -> NoReturn:
        self.scanner.syntax_error(message)

    def expect(self, tok: str) -> int:
        pos = self.pos
        if self.tok != tok:
            self.syntax_error(f"Expected '{tok}'")
        self.advance()
        return pos

    def check(self, tok: str) -> bool:
        if self.tok != tok:
            return False
        self.advance()
        return True

    # Names -------------------------------------------------------------------
    def typed_name(self) -> tuple[str, str]:
        typ, sep, name = self.tok.partition(":")
        if not sep:
            self.syntax_error("Typed name expected")
        return typ, name

    def verify_simple_name(self, name: str) -> None:
        if not is_simple_name(name):
            self.syntax_error("Name expected")

    def verify_hostname(self, name: str) -> None:
        if not is_hostname(name):
            self.syntax_error("Hostname expected")

    def verify_network_name(self, name: str) -> None:
        if not is_network_name(name):
            self.syntax_error("Name or bridged name expected")

    # Elements ----------------------------------------------------------------
    def user(self) -> User:
        token = self.consume()
        return User(start=token.pos, end=token.end)

    def object_ref(self, typ: str, name: str) -> NamedRef:
        token = self.consume()
        return NamedRef(start=token.pos, end=token.end, typ=typ, name=name)

    def host_ref(self, typ: str, name: str) -> NamedRef:
        self.verify_hostname(name)
        return self.object_ref(typ, name)

    def network_ref(self, typ: str, name: str) -> NamedRef:
        self.verify_network_name(name)
        return self.object_ref(typ, name)

    def simple_ref(self, typ: str, name: str) -> NamedRef:
        self.verify_simple_name(name)
        return self.object_ref(typ, name)

    def selector(self) -> str:
        result = self.tok
        if result not in ("auto", "all"):
            self.syntax_error("Expected [auto|all]")
        self.advance()
        self.expect("]")
        return result

    def intf_ref(self, typ: str, name: str) -> IntfRef:
        router, dot, network = name.partition(".")
        if not dot:
            self.syntax_error("Interface name expected")
        valid = is_router_name(router)
        start = self.pos
        self.advance()
        extension = ""
        if network == "[":
            # Network stays empty, the extension holds the selector.
            network, extension = "", self.selector()
        else:
            network, dot, extension = network.partition(".")
            valid = valid and is_network_name(network) and (not dot or is_simple_name(extension))
        # Reported behind the interface token.
        if not valid:
            self.syntax_error("Interface name expected")
        return IntfRef(start=start, end=self.last_end, typ=typ, router=router, network=network, extension=extension)

    def simple_auto(self, start: int, typ: str) -> SimpleAuto:
        elements = self.union("]")
        return SimpleAuto(start=start, end=self.last_end, typ=typ, elements=elements)

    def ip_prefix(self) -> IPv4Interface | IPv6Interface:
        address, slash, length = self.tok.partition("/")
        if not slash:
            self.syntax_error("Expected 'IP/prefixlen'")
        try:
            ip = ip_address(address)
        except ValueError:
            ip = None
        if ip is None:
            self.syntax_error("IP address expected")
        if not (length.isascii() and length.isdigit()) or int(length) > ip.max_prefixlen:
            self.syntax_error("Prefixlen expected")
        self.advance()
        return ip_interface(f"{ip}/{int(length)}")

    def agg_auto(self, start: int, typ: str) -> AggAuto:
        net = None
        if self.check("ip"):
            self.check("=")
            net = self.ip_prefix()
            self.expect("&")
        elements = self.union("]")
        return AggAuto(start=start, end=self.last_end, typ=typ, elements=elements, net=net)

    def intf_auto(self, start: int, typ: str) -> IntfAuto:
        managed = False
        if self.check("managed"):
            managed = True
            self.expect("&")
        elements = self.union("]")
        self.expect(".[")
        selector = self.selector()
        return IntfAuto(
            start=start, end=self.last_end, typ=typ, elements=elements, managed=managed, selector=selector
        )

    def auto_group(self, typ: str) -> Element:
        match typ:
            case "host" | "network":
                parse = self.simple_auto
            case "any":
                parse = self.agg_auto
            case "interface":
                parse = self.intf_auto
            case _:
                self.syntax_error("Unexpected automatic group")
        start = self.pos
        self.advance()
        return parse(start, typ)

    def extended_name(self) -> Element:
        if self.tok == "user":
            return self.user()
        typ, name = self.typed_name()
        if name == "[":
            return self.auto_group(typ)
        match typ:
            case "host":
                return self.host_ref(typ, name)
            case "network":
                return self.network_ref(typ, name)
            case "interface":
                return self.intf_ref(typ, name)
            case "any" | "area" | "group":
                return self.simple_ref(typ, name)
            case _:
                self.syntax_error("Unknown element type")

    def complement(self) -> Element:
        start = self.pos
        if self.check("!"):
            element = self.extended_name()
            return Complement(start=start, end=self.last_end, element=element)
        return self.extended_name()

    def intersection(self) -> Element:
        start = self.pos
        if self.tok == "!":
            self.syntax_error("Complement not allowed as first element")
        elements = [self.extended_name()]
        while self.check("&"):
            elements.append(self.complement())
        if len(elements) == 1:
            return elements[0]
        return Intersection(start=start, end=self.last_end, elements=elements)

    def comma_list(self, parse_item: Callable[[], T], stop: str) -> list[T]:
        """Read comma separated items up to ``stop``; a trailing comma is ok."""
        items = [parse_item()]
        while not self.check(stop):
            self.expect(",")
            if self.check(stop):
                break
            items.append(parse_item())
        return items

    def union(self, stop: str) -> list[Element]:
        return self.comma_list(self.intersection, stop)

    # Attributes and protocols ------------------------------------------------
    def value(self) -> Value:
        if self.current_token.is_eof or self.tok in DELIMITERS:
            self.syntax_error("Value expected")
        token = self.consume()
        return Value(start=token.pos, end=token.end, value=token.value)

    def attribute(self) -> Attribute:
        start = self.pos
        name = self.tok
        if name in DELIMITERS:
            self.syntax_error("Name expected")
        self.verify_simple_name(name)
        self.advance()
        values = []
        if not self.check(";"):
            self.expect("=")
            values = self.comma_list(self.value, ";")
        return Attribute(start=start, end=self.last_end, name=name, values=values)

    def protocol(self) -> ProtocolElement:
        token = self.current_token
        if ":" in token.value:
            typ, name = self.typed_name()
            if typ not in ("protocol", "protocolgroup"):
                self.syntax_error("Unknown protocol type")
            return self.simple_ref(typ, name)
        if token.value not in PROTOCOLS:
            self.syntax_error("Unknown protocol")
        self.advance()
        details = []
        while self.tok not in (",", ";") and not self.current_token.is_eof:
            if self.tok in DELIMITERS:
                self.syntax_error("Expected ',' or ';'")
            details.append(self.consume().value)
        return SimpleProtocol(start=token.pos, end=self.last_end, proto=token.value, details=details)

    # Toplevel definitions ----------------------------------------------------
    def description(self) -> Description | None:
        start = self.pos
        if not self.check("description"):
            return None
        if self.tok != "=":
            self.syntax_error("Expected '='")
        text = self.scanner.to_eol()
        self.last_end = text.end
        self.current_token = self.scanner.token()
        return Description(start=start, end=text.end, text=text.value.rstrip())

    def group(self) -> Group:
        token = self.consume()
        self.expect("=")
        description = self.description()
        elements = []
        if not self.check(";"):
            elements = self.union(";")
        return Group(
            start=token.pos,
            end=self.last_end,
            name=token.value,
            description=description,
            fname=self.fname,
            elements=elements,
        )

    def rule(self) -> Rule:
        start = self.pos
        deny = self.consume().value == "deny"
        self.expect("src")
        self.expect("=")
        src = self.union(";")
        dst_start = self.expect("dst")
        self.expect("=")
        dst = self.union(";")
        prt_start = self.expect("prt")
        self.expect("=")
        prt = self.comma_list(self.protocol, ";")
        log = self.attribute() if self.tok == "log" else None
        return Rule(
            start=start,
            end=self.last_end,
            deny=deny,
            dst_start=dst_start,
            prt_start=prt_start,
            src=src,
            dst=dst,
            prt=prt,
            log=log,
        )

    def service(self) -> Service:
        token = self.consume()
        self.expect("=")
        self.expect("{")
        description = self.description()
        attributes = []
        while self.tok not in ("user", "}") and not self.current_token.is_eof:
            attributes.append(self.attribute())
        user_start = self.expect("user")
        self.expect("=")
        foreach = self.check("foreach")
        user = self.union(";")
        rules = []
        while self.tok in ("permit", "deny"):
            rules.append(self.rule())
        self.expect("}")
        return Service(
            start=token.pos,
            end=self.last_end,
            name=token.value,
            description=description,
            fname=self.fname,
            attributes=attributes,
            foreach=foreach,
            user_start=user_start,
            user=user,
            rules=rules,
        )

    def toplevel(self) -> Toplevel:
        typ, name = self.typed_name()
        # Accept xxx:xxx, router:xx@xx and network:xx/xx.
        if not (
            typ == "router"
            and is_router_name(name)
            or typ == "network"
            and is_network_name(name)
            or is_simple_name(name)
        ):
            self.syntax_error("Invalid token")
        match typ:
            case "group":
                definition = self.group()
            case "service":
                definition = self.service()
            case _:
                self.syntax_error("Unknown global definition")
        self.logger.info(f"Parsed {definition.name}")
        return definition

    def parse_file(self) -> list[Toplevel]:
        toplevels = []
        while not self.current_token.is_eof:
            toplevels.append(self.toplevel())
        self.logger.info(f"Parsed {len(toplevels)} definition(s) from {self.fname or '<input>'}")
        return toplevels

    def parse_document(self) -> PolicyDocument:
        if not self.config["parse"]:
            self.toplevels = self.parse_file()
        return PolicyDocument(
            fname=self.fname,
            source=self.scanner.text,
            toplevels=self.toplevels,
            comments=self.comments,
        )


def parse_file(source: bytes | str, fname: str = "") -> list[Toplevel]:
    return Parser(source, fname).toplevels
