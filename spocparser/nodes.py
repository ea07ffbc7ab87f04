"""Node definitions for the policy syntax tree.

Every node remembers the source span it was parsed from (``start`` is the
offset of its first token, ``end`` the offset just behind its last one).
Spans are only used to find comments again when printing.
"""

from ipaddress import IPv4Interface, IPv6Interface
from pydantic import BaseModel, ConfigDict, Field


class Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: int = 0
    end: int = 0


class NamedRef(Node):
    typ: str
    name: str


class IntfRef(Node):
    typ: str
    router: str
    # Empty for "interface:r.[auto]"; extension then holds the selector.
    network: str
    extension: str = ""


class User(Node):
    pass


class SimpleAuto(Node):
    typ: str
    elements: list["Element"] = Field(default_factory=list)


class AggAuto(Node):
    typ: str
    elements: list["Element"] = Field(default_factory=list)
    net: IPv4Interface | IPv6Interface | None = None


class IntfAuto(Node):
    typ: str
    elements: list["Element"] = Field(default_factory=list)
    managed: bool = False
    selector: str = "all"


class Intersection(Node):
    elements: list["Element"] = Field(default_factory=list)


class Complement(Node):
    element: "Element"


Element = NamedRef | IntfRef | User | SimpleAuto | AggAuto | IntfAuto | Intersection | Complement


class SimpleProtocol(Node):
    proto: str
    details: list[str] = Field(default_factory=list)


ProtocolElement = NamedRef | SimpleProtocol


class Value(Node):
    value: str


class Attribute(Node):
    name: str
    values: list[Value] = Field(default_factory=list)


class Description(Node):
    text: str


class Rule(Node):
    deny: bool = False
    # Offsets of the "dst" and "prt" keywords.
    dst_start: int = 0
    prt_start: int = 0
    src: list[Element] = Field(default_factory=list)
    dst: list[Element] = Field(default_factory=list)
    prt: list[ProtocolElement] = Field(default_factory=list)
    log: Attribute | None = None


class Toplevel(Node):
    name: str
    description: Description | None = None
    fname: str = ""


class Group(Toplevel):
    elements: list[Element] = Field(default_factory=list)


class Service(Toplevel):
    attributes: list[Attribute] = Field(default_factory=list)
    foreach: bool = False
    # Offset of the "user" keyword.
    user_start: int = 0
    user: list[Element] = Field(default_factory=list)
    rules: list[Rule] = Field(default_factory=list)


for _model in (SimpleAuto, AggAuto, IntfAuto, Intersection, Complement, Rule, Group, Service):
    _model.model_rebuild()
