"""Canonical order of union members and protocols.

Members of a union are grouped by object type.  Inside a type, objects
whose name embeds an IPv4 address (``n_10_1_2_0``, ``r_10.1.1.1-10.1.1.9``)
come after all other objects and are ordered numerically by that address;
the rest is ordered by name.
"""

from __future__ import annotations

import re
from typing import Iterable

from spocparser.nodes import (
    AggAuto,
    Complement,
    Element,
    IntfAuto,
    IntfRef,
    Intersection,
    NamedRef,
    ProtocolElement,
    SimpleAuto,
    SimpleProtocol,
    User,
)

TYPE_ORDER = {
    "user": 0,
    "group": 1,
    "area": 2,
    "any": 3,
    "network": 4,
    "interface": 5,
    "host": 6,
}

PROTOCOL_ORDER = {
    "icmp": 1,
    "proto": 2,
    "tcp": 3,
    "udp": 4,
}

_OCTET = r"(\d{1,3})"
_ADDRESS = rf"{_OCTET}[._]{_OCTET}[._]{_OCTET}[._]{_OCTET}"
ADDRESS_PATTERN = re.compile(rf"(?<!\d){_ADDRESS}(?:-(?:{_ADDRESS}|(\d{{1,3}})))?(?!\d)")

NUMBER_PATTERN = re.compile(r"\d+")

ElementKey = tuple[int, int, int, int, str, str]


def interface_name(el: IntfRef) -> str:
    if not el.network:
        return f"{el.router}.[{el.extension}]"
    if el.extension:
        return f"{el.router}.{el.network}.{el.extension}"
    return f"{el.router}.{el.network}"


def element_text(el: Element) -> str:
    """Single line rendering of ``el``, used for sorting."""
    match el:
        case NamedRef():
            return f"{el.typ}:{el.name}"
        case IntfRef():
            return f"{el.typ}:{interface_name(el)}"
        case User():
            return "user"
        case SimpleAuto():
            return f"{el.typ}:[{_inner_text(el.elements)}]"
        case AggAuto():
            condition = f"ip = {el.net} & " if el.net is not None else ""
            return f"{el.typ}:[{condition}{_inner_text(el.elements)}]"
        case IntfAuto():
            condition = "managed & " if el.managed else ""
            return f"{el.typ}:[{condition}{_inner_text(el.elements)}].[{el.selector}]"
        case Intersection():
            parts = [element_text(el.elements[0])]
            for member in el.elements[1:]:
                if isinstance(member, Complement):
                    parts.append(f"&! {element_text(member.element)}")
                else:
                    parts.append(f"& {element_text(member)}")
            return " ".join(parts)
        case Complement():
            return f"! {element_text(el.element)}"
        case _:
            raise ValueError(f"Unknown element: {type(el).__name__}")


def _inner_text(elements: Iterable[Element]) -> str:
    return ", ".join(element_text(el) for el in sort_elements(elements))


def element_type(el: Element) -> str:
    match el:
        case User():
            return "user"
        case Intersection():
            return element_type(el.elements[0])
        case Complement():
            return element_type(el.element)
        case _:
            return el.typ


def name_text(el: Element) -> str:
    text = element_text(el)
    typ, sep, name = text.partition(":")
    return name if sep else text


def _to_int(octets: tuple[str | None, ...]) -> int | None:
    if any(octet is None or int(octet) > 255 for octet in octets):
        return None
    value = 0
    for octet in octets:
        value = value * 256 + int(octet)  # type: ignore[arg-type]
    return value


def extract_address(name: str) -> tuple[int, int] | None:
    """Find the first valid IPv4 address embedded in ``name``.

    Returns the address and a tie-break value taken from a following
    ``-PREFIXLEN`` or ``-SECOND_ADDRESS``, -1 if there is none.
    """
    for match in ADDRESS_PATTERN.finditer(name):
        groups = match.groups()
        address = _to_int(groups[0:4])
        if address is None:
            continue
        tiebreak = -1
        if groups[4] is not None:
            second = _to_int(groups[4:8])
            if second is not None:
                tiebreak = second
        elif groups[8] is not None:
            tiebreak = int(groups[8])
        return address, tiebreak
    return None


def element_key(el: Element) -> ElementKey:
    rank = TYPE_ORDER.get(element_type(el), len(TYPE_ORDER))
    name = name_text(el)
    text = element_text(el)
    found = extract_address(name)
    if found is None:
        return rank, 0, 0, 0, name, text
    address, tiebreak = found
    return rank, 1, address, tiebreak, name, text


def sort_elements(elements: Iterable[Element]) -> list[Element]:
    return sorted(elements, key=element_key)


def protocol_text(prt: ProtocolElement) -> str:
    match prt:
        case NamedRef():
            return f"{prt.typ}:{prt.name}"
        case SimpleProtocol():
            return " ".join([prt.proto, *prt.details])
        case _:
            raise ValueError(f"Unknown protocol: {type(prt).__name__}")


def protocol_key(prt: ProtocolElement) -> tuple[int, tuple[int, ...], str]:
    if isinstance(prt, SimpleProtocol):
        rank = PROTOCOL_ORDER.get(prt.proto, len(PROTOCOL_ORDER) + 1)
        numbers = tuple(int(n) for n in NUMBER_PATTERN.findall(" ".join(prt.details)))
        return rank, numbers, protocol_text(prt)
    return 0, (), protocol_text(prt)


def sort_protocols(protocols: Iterable[ProtocolElement]) -> list[ProtocolElement]:
    return sorted(protocols, key=protocol_key)
