"""Parser for static metric definitions.

The accepted text is a sequence of items of two kinds::

    pub label_enum Methods { post, get, put: "PUT" }

    pub struct HttpRequests: Counter {
        "method" => Methods,
        "product" => { foo, bar: "bar_name" },
    }

A value written alone is both the field name and the label value; ``name:
"value"`` gives them separately. A label is either an inline value list or
the name of a ``label_enum`` defined elsewhere.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, TypeVar, Union

from .value import MetricsError

__all__ = [
    "StaticMetricSyntaxError",
    "ValueDef",
    "LabelEnumDef",
    "LabelDef",
    "MetricDef",
    "StaticMetricBody",
    "parse",
]

_T = TypeVar("_T")

_KEYWORDS = frozenset(
    """
    as break const continue crate else enum extern false fn for if impl in let
    loop match mod move mut pub ref return self Self static struct super trait
    true type unsafe use where while async await dyn abstract become box do
    final macro override priv typeof unsized virtual yield try
    """.split()
)

_IDENT_RE = re.compile(r"[^\W\d]\w*")
_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    "0": "\0",
    "'": "'",
    '"': '"',
}
_RESTRICTED_SCOPES = ("crate", "self", "super")


class StaticMetricSyntaxError(MetricsError):
    """The definition text does not follow the static metric grammar."""

    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(f"{message} (line {line}, column {column})")
        self.message = message
        self.line = line
        self.column = column


@dataclass(frozen=True)
class ValueDef:
    """One possible label value: the field name and the label value it stands for."""

    name: str
    value: str


@dataclass(frozen=True)
class LabelEnumDef:
    """A named, reusable list of label values."""

    name: str
    definitions: tuple[ValueDef, ...]
    visibility: str = ""

    @property
    def is_public(self) -> bool:
        return self.visibility == "pub"


@dataclass(frozen=True)
class LabelDef:
    """A label key with either inline values or a reference to a label enum."""

    key: str
    values: Optional[tuple[ValueDef, ...]] = None
    enum_ref: Optional[str] = None

    def value_defs(self, enums: Mapping[str, LabelEnumDef]) -> tuple[ValueDef, ...]:
        """Return the label's values, looking them up in ``enums`` for an enum reference."""
        if self.enum_ref is None:
            return self.values or ()
        try:
            return enums[self.enum_ref].definitions
        except KeyError:
            raise KeyError(f"label enum `{self.enum_ref}` is undefined") from None

    def enum_name(self) -> Optional[str]:
        """Return the referenced enum's name, or None for an inline value list."""
        return self.enum_ref


@dataclass(frozen=True)
class MetricDef:
    """A static metric: its struct name, metric type and ordered labels."""

    struct_name: str
    metric_type: str
    labels: tuple[LabelDef, ...]
    visibility: str = ""

    @property
    def is_public(self) -> bool:
        return self.visibility == "pub"


@dataclass(frozen=True)
class StaticMetricBody:
    """All items of a definition text, in the order written."""

    items: tuple[Union[MetricDef, LabelEnumDef], ...] = field(default_factory=tuple)


class _Kind(enum.Enum):
    IDENT = "identifier"
    STRING = "string literal"
    PUNCT = "punctuation"
    EOF = "end of input"


@dataclass(frozen=True)
class _Token:
    kind: _Kind
    text: str
    line: int
    column: int


class _Lexer:
    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _location(self, pos: int) -> tuple[int, int]:
        line = self._text.count("\n", 0, pos) + 1
        column = pos - (self._text.rfind("\n", 0, pos) + 1) + 1
        return line, column

    def _error(self, message: str, pos: int) -> StaticMetricSyntaxError:
        return StaticMetricSyntaxError(message, *self._location(pos))

    def tokens(self) -> list[_Token]:
        text = self._text
        result: list[_Token] = []
        while True:
            self._skip_trivia()
            start = self._pos
            if start >= len(text):
                result.append(_Token(_Kind.EOF, "", *self._location(start)))
                return result
            ch = text[start]
            if ch == '"':
                value = self._string(start)
                result.append(_Token(_Kind.STRING, value, *self._location(start)))
            elif ch == "r" and re.match(r'r#*"', text[start:]):
                value = self._raw_string(start)
                result.append(_Token(_Kind.STRING, value, *self._location(start)))
            elif text.startswith("=>", start):
                self._pos += 2
                result.append(_Token(_Kind.PUNCT, "=>", *self._location(start)))
            elif ch in "{}(),:":
                self._pos += 1
                result.append(_Token(_Kind.PUNCT, ch, *self._location(start)))
            else:
                match = _IDENT_RE.match(text, start)
                if match is None:
                    raise self._error(f"unexpected character {ch!r}", start)
                self._pos = match.end()
                result.append(_Token(_Kind.IDENT, match.group(), *self._location(start)))

    def _skip_trivia(self) -> None:
        text = self._text
        while self._pos < len(text):
            if text[self._pos].isspace():
                self._pos += 1
            elif text.startswith("//", self._pos):
                end = text.find("\n", self._pos)
                self._pos = len(text) if end < 0 else end + 1
            elif text.startswith("/*", self._pos):
                self._block_comment()
            else:
                return

    def _block_comment(self) -> None:
        text = self._text
        start = self._pos
        depth = 0
        while self._pos < len(text):
            if text.startswith("/*", self._pos):
                depth += 1
                self._pos += 2
            elif text.startswith("*/", self._pos):
                depth -= 1
                self._pos += 2
                if depth == 0:
                    return
            else:
                self._pos += 1
        raise self._error("unterminated block comment", start)

    def _string(self, start: int) -> str:
        text = self._text
        pos = start + 1
        chars: list[str] = []
        while pos < len(text):
            ch = text[pos]
            if ch == '"':
                self._pos = pos + 1
                return "".join(chars)
            if ch != "\\":
                chars.append(ch)
                pos += 1
                continue
            if pos + 1 >= len(text):
                break
            esc = text[pos + 1]
            if esc in _SIMPLE_ESCAPES:
                chars.append(_SIMPLE_ESCAPES[esc])
                pos += 2
            elif esc == "x":
                digits = text[pos + 2 : pos + 4]
                if not re.fullmatch(r"[0-7][0-9a-fA-F]", digits):
                    raise self._error("invalid \\x escape", pos)
                chars.append(chr(int(digits, 16)))
                pos += 4
            elif esc == "u":
                match = re.compile(r"\{([0-9a-fA-F]{1,6})\}").match(text, pos + 2)
                if match is None:
                    raise self._error("invalid \\u escape", pos)
                code = int(match.group(1), 16)
                if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                    raise self._error("invalid unicode code point in \\u escape", pos)
                chars.append(chr(code))
                pos = match.end()
            elif esc == "\n":
                pos += 2
                while pos < len(text) and text[pos].isspace():
                    pos += 1
            else:
                raise self._error(f"unknown character escape {esc!r}", pos)
        raise self._error("unterminated string literal", start)

    def _raw_string(self, start: int) -> str:
        text = self._text
        hashes = re.match(r"r(#*)\"", text[start:]).group(1)
        body_start = start + 2 + len(hashes)
        terminator = '"' + hashes
        end = text.find(terminator, body_start)
        if end < 0:
            raise self._error("unterminated raw string literal", start)
        self._pos = end + len(terminator)
        return text[body_start:end]


class _Parser:
    def __init__(self, tokens: list[_Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> _Token:
        return self._tokens[self._pos]

    def _next(self) -> _Token:
        token = self._tokens[self._pos]
        if token.kind is not _Kind.EOF:
            self._pos += 1
        return token

    @staticmethod
    def _error(message: str, token: _Token) -> StaticMetricSyntaxError:
        found = token.kind.value if token.kind is _Kind.EOF else repr(token.text)
        return StaticMetricSyntaxError(f"{message}, found {found}", token.line, token.column)

    def _at_punct(self, text: str) -> bool:
        token = self._peek()
        return token.kind is _Kind.PUNCT and token.text == text

    def _at_word(self, word: str) -> bool:
        token = self._peek()
        return token.kind is _Kind.IDENT and token.text == word

    def _expect_punct(self, text: str) -> None:
        if not self._at_punct(text):
            raise self._error(f"expected `{text}`", self._peek())
        self._next()

    def _expect_word(self, word: str) -> None:
        if not self._at_word(word):
            raise self._error(f"expected `{word}`", self._peek())
        self._next()

    def _expect_ident(self) -> str:
        token = self._peek()
        if token.kind is not _Kind.IDENT or token.text in _KEYWORDS:
            raise self._error("expected identifier", token)
        self._next()
        return token.text

    def _expect_string(self) -> str:
        token = self._peek()
        if token.kind is not _Kind.STRING:
            raise self._error("expected string literal", token)
        self._next()
        return token.text

    def _braced_list(self, item: Callable[[], _T]) -> tuple[_T, ...]:
        self._expect_punct("{")
        items: list[_T] = []
        while not self._at_punct("}"):
            items.append(item())
            if self._at_punct("}"):
                break
            self._expect_punct(",")
        self._expect_punct("}")
        return tuple(items)

    def body(self) -> StaticMetricBody:
        items: list[Union[MetricDef, LabelEnumDef]] = []
        while self._peek().kind is not _Kind.EOF:
            items.append(self._item())
        return StaticMetricBody(tuple(items))

    def _item(self) -> Union[MetricDef, LabelEnumDef]:
        visibility = self._visibility()
        if self._at_word("struct"):
            return self._metric(visibility)
        self._expect_word("label_enum")
        name = self._expect_ident()
        return LabelEnumDef(name, self._braced_list(self._value_def), visibility)

    def _visibility(self) -> str:
        if not self._at_word("pub"):
            return ""
        self._next()
        if not self._at_punct("("):
            return "pub"
        self._next()
        token = self._peek()
        if token.kind is not _Kind.IDENT or token.text not in _RESTRICTED_SCOPES:
            raise self._error("expected `crate`, `self` or `super`", token)
        self._next()
        self._expect_punct(")")
        return f"pub({token.text})"

    def _metric(self, visibility: str) -> MetricDef:
        self._expect_word("struct")
        struct_name = self._expect_ident()
        self._expect_punct(":")
        metric_type = self._expect_ident()
        labels = self._braced_list(self._label_def)
        return MetricDef(struct_name, metric_type, labels, visibility)

    def _label_def(self) -> LabelDef:
        key = self._expect_string()
        self._expect_punct("=>")
        if self._at_punct("{"):
            return LabelDef(key, values=self._braced_list(self._value_def))
        return LabelDef(key, enum_ref=self._expect_ident())

    def _value_def(self) -> ValueDef:
        name = self._expect_ident()
        if self._at_punct(":"):
            self._next()
            return ValueDef(name, self._expect_string())
        return ValueDef(name, name)


def parse(text: str) -> StaticMetricBody:
    """Parse static metric definitions; raise StaticMetricSyntaxError on bad input."""
    return _Parser(_Lexer(text).tokens()).body()