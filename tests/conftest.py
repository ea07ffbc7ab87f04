"""Shared fixtures for the spocparser test-suite."""

import pytest

from spocparser import Parser


def format_policy(source: str, fname: str = "test.spoc") -> str:
    return Parser(source, fname).parse_document().render()


@pytest.fixture
def fmt():
    return format_policy


@pytest.fixture
def parse():
    def _parse(source: str, fname: str = "test.spoc"):
        return Parser(source, fname).toplevels

    return _parse
