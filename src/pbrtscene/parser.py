"""Recursive-descent parser for scene-description directive files.

Every recognizer takes the comment-stripped buffer and a byte offset and
returns ``(result, new_offset)``. Recognizers skip leading whitespace and
raise a ``ParseError`` subclass on failure; nothing is returned partially.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pbrtscene.errors import (
    MalformedNumericLiteral,
    ParseError,
    TruncatedInput,
    UnbalancedAttributeScope,
    UnexpectedToken,
    UnknownParameterType,
    UnterminatedQuotedString,
)
from pbrtscene.geometry import Point3f
from pbrtscene.models import (
    INT64_MAX,
    INT64_MIN,
    Attribute,
    BlackbodyValue,
    BoolValue,
    Camera,
    Film,
    FloatValue,
    Integrator,
    IntValue,
    LightSource,
    LookAt,
    Material,
    ParamSet,
    ParamSetItem,
    Point3fValue,
    RGBValue,
    Sampler,
    Scene,
    Shape,
    StringValue,
    Texture,
    TextureValue,
    Translate,
)
from pbrtscene.preprocessing import strip_comments
from pbrtscene.warning_policy import DUPLICATE_PARAMETER, SceneWarning, WarningPolicy, report

_WS_RE = re.compile(rb"[ \t\r\n]*")
_WORD_RE = re.compile(rb"[A-Za-z][A-Za-z0-9]*")
# Mantissa alternatives are ordered so that "3." is taken whole instead of "3".
_NUMBER_RE = re.compile(rb"[+-]?(?:[0-9]*\.[0-9]+|[0-9]+\.|[0-9]+)(?:[eE][+-]?[0-9]+)?")
_INTEGER_RE = re.compile(rb"[+-]?[0-9]+")
_BOOL_RE = re.compile(rb'(true|false)(?![A-Za-z0-9_])|"(true|false)"')
_NAME_RE = re.compile(rb'"([A-Za-z0-9]+)"')
_PARAM_HEADER_RE = re.compile(rb'"([A-Za-z0-9]+)[ \t]+([A-Za-z0-9]+)"')

_NUMBER_START = frozenset(b"+-.0123456789")
_TOKEN_TAIL = frozenset(b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_.")

OPTION_KEYWORDS: tuple[str, ...] = ("LookAt", "Camera", "Sampler", "Integrator", "Film")
WORLD_KEYWORDS: tuple[str, ...] = (
    "AttributeBegin",
    "AttributeEnd",
    "LightSource",
    "Material",
    "Shape",
    "Translate",
    "Texture",
)
KEYWORDS: tuple[str, ...] = OPTION_KEYWORDS + ("WorldBegin", "WorldEnd") + WORLD_KEYWORDS


def parse(source: bytes | str, *, warning_policy: WarningPolicy | None = None) -> Scene:
    """Parse a complete scene-description buffer.

    Args:
        source: Scene text as raw bytes, or as ``str`` (encoded as UTF-8).
        warning_policy: Optional policy for non-fatal diagnostics.

    Returns:
        The immutable Scene.

    Raises:
        ParseError: On any grammar failure. The whole input must match.
        DiagnosticError: When the policy escalates a warning code.
    """
    if isinstance(source, str):
        source = source.encode("utf-8")
    data = strip_comments(bytes(source))

    options, pos = parse_options(data, 0, warning_policy)
    pos = expect_keyword(data, pos, "WorldBegin")
    world_objects, pos = parse_world_blocks(data, pos, warning_policy)
    pos = expect_keyword(data, pos, "WorldEnd")

    pos = skip_ws(data, pos)
    if pos < len(data):
        raise UnexpectedToken("end of input", pos, data, found=_describe(data, pos))

    return Scene(options=tuple(options), world_objects=tuple(world_objects))


def parse_file(path: str | Path, *, warning_policy: WarningPolicy | None = None) -> Scene:
    """Read ``path`` as bytes and parse it.

    Raises:
        ParseError: If the file cannot be read or does not parse.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ParseError(f"Cannot read file: {e}") from e
    return parse(data, warning_policy=warning_policy)


# ---------------------------------------------------------------------------
# Tokens and primitive literals
# ---------------------------------------------------------------------------


def skip_ws(data: bytes, pos: int) -> int:
    return _WS_RE.match(data, pos).end()


def _describe(data: bytes, pos: int) -> str:
    """Short printable excerpt of the token at ``pos`` for error messages."""
    end = pos
    while end < len(data) and end - pos < 24 and data[end] not in b" \t\r\n":
        end += 1
    return data[pos:end].decode("utf-8", errors="replace")


def _check_token_end(data: bytes, end: int, expected: str) -> None:
    if end < len(data) and data[end] in _TOKEN_TAIL:
        raise MalformedNumericLiteral(f"Malformed {expected} literal", end, data)


def _truncated_keyword(data: bytes, pos: int, candidates: tuple[str, ...]) -> int | None:
    """Bytes still needed if the buffer ends inside one of ``candidates``."""
    rest = data[pos:].decode("ascii", errors="replace")
    needed = [len(c) - len(rest) for c in candidates if c.startswith(rest) and len(c) > len(rest)]
    return min(needed) if needed else None


def read_word(data: bytes, pos: int) -> tuple[str | None, int]:
    """Read a bare identifier at ``pos`` (after whitespace); ``None`` if there is none."""
    pos = skip_ws(data, pos)
    m = _WORD_RE.match(data, pos)
    if m is None:
        return None, pos
    return m.group().decode("ascii"), m.end()


def expect_keyword(data: bytes, pos: int, keyword: str) -> int:
    """Consume the literal ``keyword`` and return the offset after it."""
    pos = skip_ws(data, pos)
    word, end = read_word(data, pos)
    if word == keyword:
        return end
    if end >= len(data):
        needed = _truncated_keyword(data, pos, (keyword,))
        if needed is not None:
            raise TruncatedInput(needed, keyword, pos, data)
    raise UnexpectedToken(keyword, pos, data, found=_describe(data, pos))


def parse_bool(data: bytes, pos: int = 0) -> tuple[bool, int]:
    """Recognize ``true`` or ``false``, bare or quoted."""
    pos = skip_ws(data, pos)
    if pos >= len(data):
        raise TruncatedInput(1, "boolean", pos, data)
    m = _BOOL_RE.match(data, pos)
    if m is None:
        raise UnexpectedToken("boolean", pos, data, found=_describe(data, pos))
    word = m.group(1) or m.group(2)
    return word == b"true", m.end()


def parse_number(data: bytes, pos: int = 0) -> tuple[float, int]:
    """Recognize a permissive float literal (``1``, ``1.``, ``.5``, ``1.5e-3``)."""
    pos = skip_ws(data, pos)
    if pos >= len(data):
        raise TruncatedInput(1, "number", pos, data)
    m = _NUMBER_RE.match(data, pos)
    if m is None:
        if data[pos] in _NUMBER_START:
            raise MalformedNumericLiteral(
                f"Malformed number {_describe(data, pos)!r}", pos, data
            )
        raise UnexpectedToken("number", pos, data, found=_describe(data, pos))
    _check_token_end(data, m.end(), "number")
    return float(m.group()), m.end()


def parse_integer(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Recognize a signed 64-bit decimal integer; a decimal point or exponent is an error."""
    pos = skip_ws(data, pos)
    if pos >= len(data):
        raise TruncatedInput(1, "integer", pos, data)
    m = _INTEGER_RE.match(data, pos)
    if m is None:
        if data[pos] in _NUMBER_START:
            raise MalformedNumericLiteral(
                f"Malformed integer {_describe(data, pos)!r}", pos, data
            )
        raise UnexpectedToken("integer", pos, data, found=_describe(data, pos))
    _check_token_end(data, m.end(), "integer")
    value = int(m.group())
    if not INT64_MIN <= value <= INT64_MAX:
        raise MalformedNumericLiteral(
            f"Integer {m.group().decode('ascii')} does not fit in 64 bits", pos, data
        )
    return value, m.end()


def _closing_quote(data: bytes, pos: int) -> int:
    """Offset of the quote closing the string opened at ``pos``."""
    end = data.find(b'"', pos + 1)
    if end < 0:
        raise UnterminatedQuotedString("Unterminated quoted string", pos, data)
    return end


def parse_quoted_name(data: bytes, pos: int = 0) -> tuple[str, int]:
    """Recognize a double-quoted alphanumeric name."""
    pos = skip_ws(data, pos)
    if pos >= len(data):
        raise TruncatedInput(1, "quoted name", pos, data)
    if data[pos] != ord('"'):
        raise UnexpectedToken("quoted name", pos, data, found=_describe(data, pos))
    end = _closing_quote(data, pos)
    m = _NAME_RE.match(data, pos)
    if m is None:
        found = data[pos : end + 1].decode("utf-8", errors="replace")
        raise UnexpectedToken("alphanumeric quoted name", pos, data, found=found)
    return m.group(1).decode("ascii"), m.end()


def parse_quoted_string(data: bytes, pos: int = 0) -> tuple[str, int]:
    """Recognize a double-quoted string of any bytes except ``"``; no escapes."""
    pos = skip_ws(data, pos)
    if pos >= len(data):
        raise TruncatedInput(1, "quoted string", pos, data)
    if data[pos] != ord('"'):
        raise UnexpectedToken("quoted string", pos, data, found=_describe(data, pos))
    end = _closing_quote(data, pos)
    try:
        text = data[pos + 1 : end].decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"Quoted string is not valid UTF-8: {e}", pos, data) from e
    return text, end + 1


# ---------------------------------------------------------------------------
# Parameter values and parameter sets
# ---------------------------------------------------------------------------

LiteralParser = Callable[[bytes, int], tuple[Any, int]]
LooksLike = Callable[[bytes, int], bool]


def _looks_like_number(data: bytes, pos: int) -> bool:
    return pos < len(data) and data[pos] in _NUMBER_START


def _looks_like_bool(data: bytes, pos: int) -> bool:
    return _BOOL_RE.match(data, pos) is not None


def _bracketed(data: bytes, pos: int, literal: LiteralParser, expected: str) -> tuple[list, int]:
    """``[`` one-or-more literals ``]``; ``pos`` points just past the ``[``."""
    values: list = []
    while True:
        pos = skip_ws(data, pos)
        if pos >= len(data):
            raise TruncatedInput(1, "']'", pos, data)
        if data[pos] == ord("]"):
            if not values:
                raise UnexpectedToken(expected, pos, data, found="]")
            return values, pos + 1
        value, pos = literal(data, pos)
        values.append(value)


def _run(
    data: bytes, pos: int, literal: LiteralParser, looks_like: LooksLike, expected: str
) -> tuple[list, int]:
    """Bracketed list, or a bare run of one-or-more literals."""
    pos = skip_ws(data, pos)
    if pos < len(data) and data[pos] == ord("["):
        return _bracketed(data, pos + 1, literal, expected)
    value, pos = literal(data, pos)
    values = [value]
    while True:
        nxt = skip_ws(data, pos)
        if not looks_like(data, nxt):
            return values, pos
        value, pos = literal(data, nxt)
        values.append(value)


def _single_or_bracketed(
    data: bytes, pos: int, literal: LiteralParser, expected: str
) -> tuple[list, int]:
    """Bracketed list, or exactly one bare literal."""
    pos = skip_ws(data, pos)
    if pos < len(data) and data[pos] == ord("["):
        return _bracketed(data, pos + 1, literal, expected)
    value, pos = literal(data, pos)
    return [value], pos


def _bool_values(data: bytes, pos: int) -> tuple[BoolValue, int]:
    values, pos = _run(data, pos, parse_bool, _looks_like_bool, "boolean")
    return BoolValue(values=tuple(values)), pos


def _float_values(data: bytes, pos: int) -> tuple[FloatValue, int]:
    values, pos = _run(data, pos, parse_number, _looks_like_number, "number")
    return FloatValue(values=tuple(values)), pos


def _integer_values(data: bytes, pos: int) -> tuple[IntValue, int]:
    values, pos = _run(data, pos, parse_integer, _looks_like_number, "integer")
    return IntValue(values=tuple(values)), pos


def _string_values(data: bytes, pos: int) -> tuple[StringValue, int]:
    values, pos = _single_or_bracketed(data, pos, parse_quoted_string, "quoted string")
    return StringValue(values=tuple(values)), pos


def _texture_values(data: bytes, pos: int) -> tuple[TextureValue, int]:
    values, pos = _single_or_bracketed(data, pos, parse_quoted_string, "texture name")
    return TextureValue(values=tuple(values)), pos


def _rgb_values(data: bytes, pos: int) -> tuple[RGBValue, int]:
    values, pos = _run(data, pos, parse_number, _looks_like_number, "number")
    return RGBValue(values=tuple(values)), pos


def _blackbody_values(data: bytes, pos: int) -> tuple[BlackbodyValue, int]:
    values, pos = _run(data, pos, parse_number, _looks_like_number, "number")
    return BlackbodyValue(values=tuple(values)), pos


def _point_values(data: bytes, pos: int) -> tuple[Point3fValue, int]:
    pos = skip_ws(data, pos)
    if pos >= len(data):
        raise TruncatedInput(1, "'['", pos, data)
    if data[pos] != ord("["):
        raise UnexpectedToken("'['", pos, data, found=_describe(data, pos))
    floats, end = _bracketed(data, pos + 1, parse_number, "number")
    if len(floats) % 3:
        raise UnexpectedToken(
            "point coordinates in groups of three", end - 1, data, found=f"{len(floats)} numbers"
        )
    points = tuple(
        Point3f(x=floats[i], y=floats[i + 1], z=floats[i + 2]) for i in range(0, len(floats), 3)
    )
    return Point3fValue(values=points), end


_VALUE_PARSERS: dict[str, Callable[[bytes, int], tuple[Any, int]]] = {
    "bool": _bool_values,
    "float": _float_values,
    "integer": _integer_values,
    "string": _string_values,
    "point": _point_values,
    "rgb": _rgb_values,
    "texture": _texture_values,
    "blackbody": _blackbody_values,
}


def parse_param_value(tag: str, data: bytes, pos: int = 0, tag_pos: int | None = None):
    """Parse the values following a ``"tag name"`` header into a typed Value.

    Raises:
        UnknownParameterType: If ``tag`` is not a known parameter type.
    """
    value_parser = _VALUE_PARSERS.get(tag)
    if value_parser is None:
        raise UnknownParameterType(tag, pos if tag_pos is None else tag_pos, data)
    return value_parser(data, pos)


def parse_param_item(data: bytes, pos: int = 0) -> tuple[ParamSetItem, int]:
    """Parse one ``"type name" value`` item."""
    pos = skip_ws(data, pos)
    m = _PARAM_HEADER_RE.match(data, pos)
    if m is None:
        if pos >= len(data):
            raise TruncatedInput(1, "parameter", pos, data)
        if data[pos] == ord('"'):
            _closing_quote(data, pos)
        raise UnexpectedToken('"type name" parameter header', pos, data, found=_describe(data, pos))
    tag = m.group(1).decode("ascii")
    name = m.group(2).decode("ascii")
    value, end = parse_param_value(tag, data, m.end(), tag_pos=m.start(1))
    return ParamSetItem(name=name, value=value), end


def parse_param_set(
    data: bytes, pos: int = 0, policy: WarningPolicy | None = None
) -> tuple[ParamSet, int]:
    """Parse zero or more parameter items; a repeated name keeps the last value."""
    items: list[ParamSetItem] = []
    seen: set[str] = set()
    while True:
        start = skip_ws(data, pos)
        if _PARAM_HEADER_RE.match(data, start) is None:
            break
        item, pos = parse_param_item(data, start)
        if item.name in seen:
            message = f"Parameter {item.name!r} given more than once; the last value is used"
            report(SceneWarning(DUPLICATE_PARAMETER, message, start, data), policy)
        seen.add(item.name)
        items.append(item)
    return ParamSet.from_items(items), pos


# ---------------------------------------------------------------------------
# Option blocks
# ---------------------------------------------------------------------------


def _numbers(data: bytes, pos: int, count: int) -> tuple[list[float], int]:
    values = []
    for _ in range(count):
        value, pos = parse_number(data, pos)
        values.append(value)
    return values, pos


def _look_at(data: bytes, pos: int, policy: WarningPolicy | None) -> tuple[LookAt, int]:
    v, pos = _numbers(data, pos, 9)
    return LookAt(eye=tuple(v[0:3]), look=tuple(v[3:6]), up=tuple(v[6:9])), pos


def _named(cls: type) -> Callable[[bytes, int, WarningPolicy | None], tuple[Any, int]]:
    """Directive taking a quoted name and an optional parameter set."""

    def parse_directive(data: bytes, pos: int, policy: WarningPolicy | None) -> tuple[Any, int]:
        name, pos = parse_quoted_name(data, pos)
        params, pos = parse_param_set(data, pos, policy)
        return cls(name=name, params=params), pos

    return parse_directive


_OPTION_PARSERS = {
    "LookAt": _look_at,
    "Camera": _named(Camera),
    "Sampler": _named(Sampler),
    "Integrator": _named(Integrator),
    "Film": _named(Film),
}


def _unexpected_directive(
    data: bytes, pos: int, expected: str, candidates: tuple[str, ...]
) -> ParseError:
    """Error for a token that does not start any directive in ``candidates``."""
    word, end = read_word(data, pos)
    if end >= len(data):
        needed = _truncated_keyword(data, pos, candidates)
        if needed is not None:
            return TruncatedInput(needed, expected, pos, data)
    if word is None and data[pos] == ord('"'):
        _closing_quote(data, pos)
    return UnexpectedToken(expected, pos, data, found=_describe(data, pos))


def parse_options(
    data: bytes, pos: int = 0, policy: WarningPolicy | None = None
) -> tuple[list, int]:
    """Parse option directives up to, but not including, ``WorldBegin``."""
    options: list = []
    while True:
        pos = skip_ws(data, pos)
        if pos >= len(data):
            raise TruncatedInput(len("WorldBegin"), "WorldBegin", pos, data)
        word, end = read_word(data, pos)
        if word == "WorldBegin":
            return options, pos
        option_parser = _OPTION_PARSERS.get(word)
        if option_parser is None:
            raise _unexpected_directive(
                data, pos, "option directive or WorldBegin", OPTION_KEYWORDS + ("WorldBegin",)
            )
        block, pos = option_parser(data, end, policy)
        options.append(block)


# ---------------------------------------------------------------------------
# World blocks
# ---------------------------------------------------------------------------


def _translate(data: bytes, pos: int, policy: WarningPolicy | None) -> tuple[Translate, int]:
    v, pos = _numbers(data, pos, 3)
    return Translate(delta=tuple(v)), pos


def _texture(data: bytes, pos: int, policy: WarningPolicy | None) -> tuple[Texture, int]:
    name, pos = parse_quoted_name(data, pos)
    texture_type, pos = parse_quoted_name(data, pos)
    texture_class, pos = parse_quoted_name(data, pos)
    params, pos = parse_param_set(data, pos, policy)
    return Texture(name=name, type=texture_type, texture_class=texture_class, params=params), pos


_WORLD_PARSERS = {
    "LightSource": _named(LightSource),
    "Material": _named(Material),
    "Shape": _named(Shape),
    "Translate": _translate,
    "Texture": _texture,
}


def parse_world_blocks(
    data: bytes, pos: int = 0, policy: WarningPolicy | None = None
) -> tuple[list, int]:
    """Parse one or more world blocks up to, but not including, ``WorldEnd``.

    Attribute scopes are tracked on an explicit stack, so nesting depth is
    not limited by the interpreter's recursion limit.
    """
    # Each frame is (offset of its AttributeBegin, blocks collected so far).
    stack: list[tuple[int, list]] = [(pos, [])]
    while True:
        pos = skip_ws(data, pos)
        if pos >= len(data):
            if len(stack) > 1:
                raise UnbalancedAttributeScope(
                    "AttributeBegin has no matching AttributeEnd", stack[-1][0], data
                )
            raise TruncatedInput(len("WorldEnd"), "WorldEnd", pos, data)

        word, end = read_word(data, pos)
        if word == "WorldEnd":
            if len(stack) > 1:
                raise UnbalancedAttributeScope(
                    "AttributeBegin has no matching AttributeEnd", stack[-1][0], data
                )
            break
        if word == "AttributeBegin":
            stack.append((pos, []))
            pos = end
            continue
        if word == "AttributeEnd":
            if len(stack) == 1:
                raise UnbalancedAttributeScope(
                    "AttributeEnd has no matching AttributeBegin", pos, data
                )
            _, blocks = stack.pop()
            if not blocks:
                raise UnexpectedToken("world directive", pos, data, found="AttributeEnd")
            stack[-1][1].append(Attribute(blocks=tuple(blocks)))
            pos = end
            continue

        world_parser = _WORLD_PARSERS.get(word)
        if world_parser is None:
            if len(stack) > 1 and _truncated_keyword(data, pos, ("AttributeEnd",)) is not None:
                raise UnbalancedAttributeScope(
                    "AttributeBegin has no matching AttributeEnd", stack[-1][0], data
                )
            raise _unexpected_directive(data, pos, "world directive", WORLD_KEYWORDS + ("WorldEnd",))
        block, pos = world_parser(data, end, policy)
        stack[-1][1].append(block)

    blocks = stack[0][1]
    if not blocks:
        raise UnexpectedToken("world directive", pos, data, found="WorldEnd")
    return blocks, pos
