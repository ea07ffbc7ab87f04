"""Comment placement tests.

Every comment of the input must show up exactly once in the output.
"""

import pytest

from spocparser import CommentIndex
from spocparser.comments import BLANK


def comment_texts(text: str) -> list[str]:
    return sorted(comment.text.strip() for comment in CommentIndex.scan(text).comments)


def lines(*rows: str) -> str:
    return "\n".join(rows) + "\n"


class TestCommentIndex:
    def test_lines(self):
        index = CommentIndex.scan("a\n\n  # c\nb")
        assert index.line_count == 4
        assert index.line_of(0) == 1
        assert index.line_of(5) == 3
        assert index.line_text(3) == "  # c"
        assert index.is_blank(2)
        assert not index.is_blank(3)
        assert not index.is_blank(9)

    def test_own_line_and_trailing(self):
        index = CommentIndex.scan("a, # t\n# own\nb")
        trailing, own = index.comments
        assert (trailing.line, trailing.own_line) == (1, False)
        assert (own.line, own.own_line) == (2, True)
        assert index.trailing(1, ",") is trailing
        assert index.trailing(1, "") is None
        assert index.trailing(0, ",") is None

    def test_leading_block_stops_at_code(self):
        source = "x\n# one\n\n# two\ny"
        index = CommentIndex.scan(source)
        block = index.leading(source.index("y"), "")
        assert [c.text if c is not BLANK else "" for c in block] == ["# one", "", "# two"]

    def test_leading_needs_start_of_line(self):
        source = "# c\nx, y"
        index = CommentIndex.scan(source)
        assert index.leading(source.index("y"), "") == []
        assert index.leading(source.index("x"), "") == [index.comments[0]]

    def test_between_toplevels_keeps_adjacent_paragraph_with_previous(self):
        source = "a;\n# stays\n\n# moves\nb;"
        index = CommentIndex.scan(source)
        block = index.between_toplevels(source.index(";") + 1, source.index("b"))
        assert [c.text for c in block if c is not BLANK] == ["# moves"]


def test_header_member_and_trailing_comments(fmt):
    source = """# head comment

group:g1 = # hdr
 # about h1
 host:h1, # trail h1
 host:h0,
; # end
"""
    assert fmt(source) == lines(
        "# head comment",
        "",
        "group:g1 = # hdr",
        " host:h0,",
        " # about h1",
        " host:h1, # trail h1",
        "; # end",
    )


def test_orphan_comment_stays_behind_its_definition(fmt):
    source = "group:a = host:x;\n# dangling\n\ngroup:b = host:y;\n"
    assert fmt(source) == lines(
        "group:a =",
        " host:x,",
        ";",
        "# dangling",
        "",
        "group:b =",
        " host:y,",
        ";",
    )


def test_comment_before_definition(fmt):
    source = "group:a = host:x;\n\n# about b\ngroup:b = host:y;\n"
    assert fmt(source) == lines(
        "group:a =",
        " host:x,",
        ";",
        "",
        "# about b",
        "group:b =",
        " host:y,",
        ";",
    )


def test_blank_lines_between_comments_collapse(fmt):
    assert fmt("# one\n\n\n# two\ngroup:a = ;") == lines("# one", "", "# two", "group:a =", ";")


def test_comments_only(fmt):
    assert fmt("# only\n") == "# only\n"
    assert fmt("# one\n\n\n# two") == lines("# one", "", "# two")


def test_comment_at_end_of_file(fmt):
    assert fmt("group:a = ;\n\n# end\n") == lines("group:a =", ";", "", "# end")


def test_description_with_comment(fmt):
    source = "group:g =\n # about\n description = text\n host:a;"
    assert fmt(source) == lines("group:g =", " # about", " description = text", "", " host:a,", ";")


def test_intersection_comments(fmt):
    source = """group:g =
 group:g1 # first
 # second
 & group:g2
 &! host:h1 # third
 ,
;
"""
    assert fmt(source) == lines(
        "group:g =",
        " group:g1 # first",
        " # second",
        " & group:g2",
        " &! host:h1 # third",
        " ,",
        ";",
    )


def test_service_comments(fmt):
    source = """service:s = { # header
 # attribute
 multi_owner; # short
 user = host:a, # first
        host:b;
 # rule
 permit src = user;
        dst = network:n1;
        prt = tcp 80; # port
} # closing
"""
    assert fmt(source) == lines(
        "service:s = { # header",
        "",
        " # attribute",
        " multi_owner; # short",
        "",
        " user = host:a, # first",
        "        host:b,",
        "        ;",
        " # rule",
        " permit src = user;",
        "        dst = network:n1;",
        "        prt = tcp 80; # port",
        "} # closing",
    )


@pytest.mark.parametrize(
    "source",
    [
        "# a\ngroup:g = # b\n host:x, # c\n # d\n host:y;\n# e\n",
        "group:g = host:b & # one\n ! host:c, # two\n host:a; # three\n# four\n",
        "service:s = {\n # x\n user = foreach host:a, # y\n host:b;\n # z\n}\n# tail\n",
        "# 1\n\n# 2\ngroup:a = ;\n\n# 3\n\n# 4\ngroup:b = ; # 5\n",
    ],
)
def test_every_comment_is_printed_once(fmt, source):
    output = fmt(source)
    assert comment_texts(output) == comment_texts(source)


def test_comment_above_member_that_sorts_first(fmt):
    source = """service:s = {
 user = host:b,
        # about a
        host:a;
 permit src = user; dst = network:n1; prt = tcp;
}
"""
    assert fmt(source) == lines(
        "service:s = {",
        "",
        " # about a",
        " user = host:a,",
        "        host:b,",
        "        ;",
        " permit src = user;",
        "        dst = network:n1;",
        "        prt = tcp;",
        "}",
    )


def test_comment_above_user_line(fmt):
    source = """service:s = {
 multi_owner;
 # who may use
 user = host:a;
 permit src = user; dst = network:n1; prt = tcp;
}
"""
    assert fmt(source) == lines(
        "service:s = {",
        "",
        " multi_owner;",
        "",
        " # who may use",
        " user = host:a;",
        " permit src = user;",
        "        dst = network:n1;",
        "        prt = tcp;",
        "}",
    )


def test_comments_above_dst_and_prt(fmt):
    source = """service:s = {
 user = host:a;
 permit src = user;
        # to n1
        dst = network:n1;
        # ports
        prt = udp 53,
              # web
              tcp 80;
}
"""
    assert fmt(source) == lines(
        "service:s = {",
        "",
        " user = host:a;",
        " permit src = user;",
        "        # to n1",
        "        dst = network:n1;",
        "        # ports",
        "        # web",
        "        prt = tcp 80,",
        "              udp 53,",
        "              ;",
        "}",
    )


def test_comments_above_first_value_and_first_source(fmt):
    source = """service:s = {
 overlaps =
  # only value
  service:s2;
 user = host:a;
 permit src = host:b,
        # a first
        host:a;
        dst = network:n1;
        prt = tcp;
}
"""
    assert fmt(source) == lines(
        "service:s = {",
        "",
        " # only value",
        " overlaps = service:s2;",
        "",
        " user = host:a;",
        " # a first",
        " permit src = host:a,",
        "              host:b,",
        "              ;",
        "        dst = network:n1;",
        "        prt = tcp;",
        "}",
    )
