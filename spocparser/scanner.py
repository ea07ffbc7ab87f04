from typing import NoReturn, NotRequired, Optional, TypedDict
from dataclasses import dataclass
from spocparser.utils import line_number, resolve_config
from spocparser.logger import Logger

# Characters that always form a token of their own.
DELIMITERS = frozenset(",;=&!{}[]()")

# Width of the source window shown on each side of <--HERE-->.
CONTEXT_WIDTH = 10


class ParseException(Exception):
    def __init__(self, message: str, line: int, fname: str, near: str):
        self.message = message
        self.line = line
        self.fname = fname
        self.near = near
        super().__init__(f'Syntax error: {message} at line {line} of {fname}, near "{near}"')


@dataclass(slots=True)
class Token:
    pos: int
    value: str

    @property
    def end(self) -> int:
        return self.pos + len(self.value)

    @property
    def is_eof(self) -> bool:
        return self.value == ""


class ScannerConfig(TypedDict):
    enable_logger: NotRequired[bool]


class ScannerConfigRequired(TypedDict):
    enable_logger: bool


DEFAULT_CONFIG: ScannerConfigRequired = {"enable_logger": False}


class Scanner:
    """Splits policy source into tokens.

    Whitespace and ``#`` comments separate tokens and are skipped; every
    skipped comment is remembered in :attr:`comments` as ``(offset, text)``
    so the printer can put it back later.
    """

    def __init__(self, source: bytes | str, fname: str = "", config: Optional[ScannerConfig] = None):
        self.fname = fname
        self.config = resolve_config(config or {}, DEFAULT_CONFIG)
        self.logger = Logger(config={"name": "Scanner Logger", "is_enabled": self.config["enable_logger"]}).logger
        self.text = self._decode(source) if isinstance(source, bytes) else source
        self.offset = 0
        self.comments: list[tuple[int, str]] = []

    def _decode(self, source: bytes) -> str:
        try:
            return source.decode("utf-8")
        except UnicodeDecodeError as exc:
            pos = exc.start
            line_start = source.rfind(b"\n", 0, pos) + 1
            line_end = source.find(b"\n", pos)
            if line_end == -1:
                line_end = len(source)
            prefix = source[max(line_start, pos - CONTEXT_WIDTH) : pos].decode("utf-8", "replace")
            suffix = source[pos : min(line_end, pos + CONTEXT_WIDTH)].decode("utf-8", "replace")
            error = ParseException(
                "Invalid UTF-8 byte", source.count(b"\n", 0, pos) + 1, self.fname, f"{prefix}<--HERE-->{suffix}"
            )
            self.logger.error(error)
            raise error from exc

    @property
    def has_more_chars(self) -> bool:
        return self.offset < len(self.text)

    @property
    def char(self) -> str:
        return self.text[self.offset] if self.has_more_chars else "\0"

    def _end_of_line(self, pos: int) -> int:
        end = self.text.find("\n", pos)
        return len(self.text) if end == -1 else end

    def _skip_whitespace(self):
        while self.has_more_chars:
            if self.char.isspace():
                self.offset += 1
            elif self.char == "#":
                start = self.offset
                self.offset = self._end_of_line(start)
                text = self.text[start : self.offset].rstrip()
                self.logger.debug(f"Skipping comment '{text}' at offset {start}")
                self.comments.append((start, text))
            else:
                break

    def _is_token_char(self, char: str) -> bool:
        return not (char.isspace() or char in DELIMITERS or char == "#")

    def token(self) -> Token:
        self._skip_whitespace()
        pos = self.offset
        if not self.has_more_chars:
            return Token(pos, "")
        if self.char in DELIMITERS:
            self.offset += 1
            return Token(pos, self.text[pos])
        while self.has_more_chars and self._is_token_char(self.char):
            self.offset += 1
        # "host:[", "interface:r1.[" and ".[" keep their opening bracket.
        if self.char == "[" and self.text[self.offset - 1] in ":.":
            self.offset += 1
        return Token(pos, self.text[pos : self.offset])

    def to_eol(self) -> Token:
        """Read the rest of the current line verbatim, comments included."""
        pos = self.offset
        self.offset = self._end_of_line(pos)
        return Token(pos, self.text[pos : self.offset])

    def tokenize(self) -> list[Token]:
        """Scan the whole source without a parser driving the scanner."""
        self.logger.info("Starting tokenization")
        tokens: list[Token] = []
        while True:
            token = self.token()
            tokens.append(token)
            if token.is_eof:
                break
            if token.value == "=" and len(tokens) > 1 and tokens[-2].value == "description":
                tokens.append(self.to_eol())
        self.logger.info("Tokenization complete")
        return tokens

    def near(self) -> str:
        pos = self.offset
        line_start = self.text.rfind("\n", 0, pos) + 1
        line_end = self._end_of_line(pos)
        prefix = self.text[max(line_start, pos - CONTEXT_WIDTH) : pos]
        suffix = self.text[pos : min(line_end, pos + CONTEXT_WIDTH)]
        return f"{prefix}<--HERE-->{suffix}"

    def syntax_error(self, message: str) -> NoReturn:
        error = ParseException(message, line_number(self.text, self.offset), self.fname, self.near())
        self.logger.error(error)
        raise error
