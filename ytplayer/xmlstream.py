"""A pull parser over XML text that reports one token at a time."""

from __future__ import annotations

import codecs
import html
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TokenType(Enum):
    """Kind of token the reader stands on."""

    NO_TOKEN = 0
    INVALID = 1
    START_DOCUMENT = 2
    END_DOCUMENT = 3
    START_ELEMENT = 4
    END_ELEMENT = 5
    CHARACTERS = 6
    COMMENT = 7
    DTD = 8
    ENTITY_REFERENCE = 9
    PROCESSING_INSTRUCTION = 10


@dataclass(frozen=True)
class Token:
    """One token of the document."""

    type: TokenType
    name: str = ""
    attributes: Mapping[str, str] = field(default_factory=dict)
    text: str = ""


class _SyntaxError(Exception):
    pass


_WHITESPACE = " \t\r\n"
_NAME = r"[^\s/>=<\"'!?]+"
_START_TAG = re.compile(
    rf"<({_NAME})((?:\s+{_NAME}\s*=\s*(?:\"[^\"<]*\"|'[^'<]*'))*)\s*(/?)>"
)
_ATTRIBUTE = re.compile(rf"({_NAME})\s*=\s*(?:\"([^\"<]*)\"|'([^'<]*)')")
_END_TAG = re.compile(rf"</({_NAME})\s*>")
_XML_DECL = re.compile(r"<\?xml(?:\s[^?]*)?\?>")
_ENCODING = re.compile(rb"""^\s*<\?xml[^>]*encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")


def _decode(data: bytes | bytearray | str) -> str:
    if isinstance(data, str):
        return data.lstrip("\ufeff")
    raw = bytes(data)
    encoding = "utf-8-sig"
    match = _ENCODING.match(raw)
    if match:
        name = match.group(1).decode("ascii")
        try:
            if codecs.lookup(name).name != "utf-8":
                encoding = name
        except LookupError:
            pass
    return raw.decode(encoding, errors="replace").lstrip("\ufeff")


def _local(name: str) -> str:
    return name.rsplit(":", 1)[-1]


def _dtd_end(text: str, pos: int) -> int:
    close = text.find(">", pos)
    bracket = text.find("[", pos)
    if bracket != -1 and (close == -1 or bracket < close):
        close_bracket = text.find("]", bracket)
        if close_bracket == -1:
            return -1
        close = text.find(">", close_bracket)
    return close


class XmlStreamReader:
    """Reads a document token by token.

    Element names are reported without a namespace prefix; character
    references and HTML named entities in text and attribute values are
    decoded.  A malformed document ends the stream with an INVALID token
    and sets ``error``.
    """

    def __init__(self, data: bytes | bytearray | str = b"") -> None:
        self._source = _decode(data)
        self._tokens = self._scan()
        self._token = Token(TokenType.NO_TOKEN)
        self._finished = False
        self.error = ""

    def _scan(self) -> Iterator[Token]:
        text = self._source
        pos = 0
        declaration = _XML_DECL.match(text)
        if declaration:
            pos = declaration.end()
        yield Token(TokenType.START_DOCUMENT)

        stack: list[str] = []
        root_done = False
        while pos < len(text):
            if text.startswith("<!--", pos):
                end = text.find("-->", pos + 4)
                if end < 0:
                    raise _SyntaxError("unterminated comment")
                yield Token(TokenType.COMMENT, text=text[pos + 4 : end])
                pos = end + 3
                continue
            if text.startswith("<![CDATA[", pos):
                if not stack:
                    raise _SyntaxError("character data outside the root element")
                end = text.find("]]>", pos + 9)
                if end < 0:
                    raise _SyntaxError("unterminated CDATA section")
                yield Token(TokenType.CHARACTERS, text=text[pos + 9 : end])
                pos = end + 3
                continue
            if text.startswith("<!", pos):
                if stack or root_done:
                    raise _SyntaxError("misplaced document type declaration")
                end = _dtd_end(text, pos)
                if end < 0:
                    raise _SyntaxError("unterminated document type declaration")
                yield Token(TokenType.DTD, text=text[pos : end + 1])
                pos = end + 1
                continue
            if text.startswith("<?", pos):
                end = text.find("?>", pos + 2)
                if end < 0:
                    raise _SyntaxError("unterminated processing instruction")
                parts = text[pos + 2 : end].split(None, 1)
                if not parts:
                    raise _SyntaxError("processing instruction without target")
                if parts[0].lower() == "xml":
                    raise _SyntaxError("XML declaration not at start of document")
                data = parts[1].strip() if len(parts) > 1 else ""
                yield Token(TokenType.PROCESSING_INSTRUCTION, name=parts[0], text=data)
                pos = end + 2
                continue
            if text.startswith("</", pos):
                match = _END_TAG.match(text, pos)
                if not match:
                    raise _SyntaxError("malformed end tag")
                if not stack or stack[-1] != match.group(1):
                    raise _SyntaxError("opening and ending tag mismatch")
                stack.pop()
                root_done = not stack
                yield Token(TokenType.END_ELEMENT, name=_local(match.group(1)))
                pos = match.end()
                continue
            if text[pos] == "<":
                match = _START_TAG.match(text, pos)
                if not match:
                    raise _SyntaxError("malformed start tag")
                if root_done:
                    raise _SyntaxError("extra content at end of document")
                attributes: dict[str, str] = {}
                for attribute in _ATTRIBUTE.finditer(match.group(2)):
                    key = attribute.group(1)
                    if key in attributes:
                        raise _SyntaxError(f"attribute redefined: {key}")
                    value = attribute.group(2)
                    if value is None:
                        value = attribute.group(3)
                    attributes[key] = html.unescape(value)
                qualified = match.group(1)
                yield Token(
                    TokenType.START_ELEMENT, name=_local(qualified), attributes=attributes
                )
                pos = match.end()
                if match.group(3):
                    yield Token(TokenType.END_ELEMENT, name=_local(qualified))
                    root_done = not stack
                else:
                    stack.append(qualified)
                continue

            end = text.find("<", pos)
            if end < 0:
                end = len(text)
            chunk = text[pos:end]
            pos = end
            if stack:
                yield Token(TokenType.CHARACTERS, text=html.unescape(chunk))
            elif chunk.strip(_WHITESPACE):
                raise _SyntaxError("text outside the root element")

        if stack or not root_done:
            raise _SyntaxError("premature end of document")
        yield Token(TokenType.END_DOCUMENT)

    @property
    def token(self) -> Token:
        """The token the reader stands on."""
        return self._token

    def read_next(self) -> TokenType:
        """Advance to the next token and return its type."""
        if self._finished:
            return self._token.type
        try:
            token = next(self._tokens)
        except _SyntaxError as exc:
            self.error = str(exc)
            self._token = Token(TokenType.INVALID)
            self._finished = True
            return TokenType.INVALID
        except StopIteration:
            self._finished = True
            return self._token.type
        self._token = token
        if token.type is TokenType.END_DOCUMENT:
            self._finished = True
        return token.type

    def at_end(self) -> bool:
        """True once the document has ended or an error was found."""
        return self._finished

    def has_error(self) -> bool:
        return bool(self.error)

    def token_type(self) -> TokenType:
        return self._token.type

    def name(self) -> str:
        """Local name of the current element; "" for other tokens."""
        if self._token.type in (TokenType.START_ELEMENT, TokenType.END_ELEMENT):
            return self._token.name
        return ""

    def attributes(self) -> dict[str, str]:
        """Attributes of the current start element; empty for other tokens."""
        if self._token.type is TokenType.START_ELEMENT:
            return dict(self._token.attributes)
        return {}

    def text(self) -> str:
        """Text of the current characters, comment or DTD; "" otherwise."""
        if self._token.type in (TokenType.CHARACTERS, TokenType.COMMENT, TokenType.DTD):
            return self._token.text
        return ""

    def is_whitespace(self) -> bool:
        return self._token.type is TokenType.CHARACTERS and not self._token.text.strip(
            _WHITESPACE
        )


def read_next_match(
    reader: XmlStreamReader,
    name: str = "",
    attributes: Mapping[str, str] | None = None,
    text: str = "",
) -> bool:
    """Advance to the next start element that matches; False if the document ends.

    An element matches when its name equals ``name`` (any name if empty) and
    every attribute in ``attributes`` has the given value; an empty value
    matches a missing attribute as well as one of any value.  If ``text`` is
    given, the element must be followed by non-blank characters, equal to
    ``text`` unless it is "true"; the reader is then left on those characters.
    """
    wanted: Mapping[str, Any] = attributes or {}
    skip = False
    while not reader.at_end():
        if not skip and reader.read_next() is not TokenType.START_ELEMENT:
            continue
        skip = False
        if name and reader.name() != name:
            continue

        found = reader.attributes()
        matched = True
        for key, value in wanted.items():
            if key in found and not value:
                continue
            if found.get(key, "") == value:
                continue
            matched = False
            break

        if text:
            skip = reader.read_next() is TokenType.START_ELEMENT
            if reader.token_type() is not TokenType.CHARACTERS or reader.is_whitespace():
                continue
            if text != "true" and text != reader.text():
                continue

        if matched:
            return True
    return False