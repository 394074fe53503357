"""
Logo Parser Combinators
Small, stateless building blocks for recursive-descent parsing.

A parser is a plain function from input text to either ``None`` (no match)
or a ``ParseResult`` holding the parsed value and the unconsumed suffix.
Nothing here knows about the Logo grammar.
"""

from typing import Any, Callable, List, NamedTuple, Optional, Sequence
from functools import reduce


class ParseResult(NamedTuple):
    """Successful match: the parsed value and the remaining input"""
    value: Any
    rest: str


Parser = Callable[[str], Optional[ParseResult]]


# ============================================================================
# PRIMITIVES
# ============================================================================

def satisfy(predicate: Callable[[str], bool]) -> Parser:
    """Match exactly one character for which predicate holds"""
    def parse(text: str) -> Optional[ParseResult]:
        if not text or not predicate(text[0]):
            return None
        return ParseResult(text[0], text[1:])
    return parse


def pmap(parser: Parser, fn: Callable[[Any], Any]) -> Parser:
    """Transform the value of a successful match"""
    def parse(text: str) -> Optional[ParseResult]:
        result = parser(text)
        if result is None:
            return None
        return ParseResult(fn(result.value), result.rest)
    return parse


def many(parser: Parser) -> Parser:
    """Apply parser until it fails; always succeeds with a (possibly empty) list"""
    def parse(text: str) -> ParseResult:
        values = []
        rest = text
        result = parser(rest)
        # A match that consumes nothing would loop forever
        while result is not None and len(result.rest) < len(rest):
            values.append(result.value)
            rest = result.rest
            result = parser(rest)
        return ParseResult(values, rest)
    return parse


def fail_on_empty(parser: Parser) -> Parser:
    """Turn a successful but empty list match into a failure"""
    def parse(text: str) -> Optional[ParseResult]:
        result = parser(text)
        if result is None or not result.value:
            return None
        return result
    return parse


def seq(*parsers: Parser) -> Parser:
    """Run parsers one after another; the value is the list of their values"""
    def parse(text: str) -> Optional[ParseResult]:
        values = []
        rest = text
        for parser in parsers:
            result = parser(rest)
            if result is None:
                return None
            values.append(result.value)
            rest = result.rest
        return ParseResult(values, rest)
    return parse


def choice(parsers: Sequence[Parser]) -> Parser:
    """Ordered choice: the first alternative that matches wins"""
    def parse(text: str) -> Optional[ParseResult]:
        for parser in parsers:
            result = parser(text)
            if result is not None:
                return result
        return None
    return parse


def lazy(factory: Callable[[], Parser]) -> Parser:
    """Defer building a parser until first use (for recursive rules)"""
    cache: List[Parser] = []

    def parse(text: str) -> Optional[ParseResult]:
        if not cache:
            cache.append(factory())
        return cache[0](text)
    return parse


# ============================================================================
# TOKENS
# ============================================================================

def is_space(char: str) -> bool:
    return char.isspace()


parse_space = satisfy(is_space)
parse_spaces = many(parse_space)


def lexeme(parser: Parser, require_space: bool = False) -> Parser:
    """
    Match parser, then consume trailing whitespace.

    With require_space set the token must end at a boundary: whitespace,
    end of input, or a character that cannot continue a token. This keeps
    ``fd20`` from reading as ``fd`` followed by ``20``.
    """
    def parse(text: str) -> Optional[ParseResult]:
        result = parser(text)
        if result is None:
            return None
        spaces = parse_spaces(result.rest)
        if require_space and not spaces.value and spaces.rest and spaces.rest[0].isalnum():
            return None
        return ParseResult(result.value, spaces.rest)
    return parse


def span(char_parser: Parser, combine: Callable[[List[str]], Any], require_space: bool = False) -> Parser:
    """One or more characters folded into a single token value"""
    return lexeme(pmap(fail_on_empty(many(char_parser)), combine), require_space)


# ============================================================================
# STRUCTURE
# ============================================================================

def binary_left(base: Parser, operator: Parser, combine: Callable[[Any, Any, Any], Any]) -> Parser:
    """
    Parse ``base (operator base)*`` and fold to the left.

    combine receives (operator_value, left, right).
    """
    def parse_tail(text: str) -> Optional[ParseResult]:
        op = operator(text)
        if op is None:
            return None
        right = base(op.rest)
        if right is None:
            return None
        return ParseResult((op.value, right.value), right.rest)

    tails = many(parse_tail)

    def parse(text: str) -> Optional[ParseResult]:
        first = base(text)
        if first is None:
            return None
        more = tails(first.rest)
        value = reduce(lambda left, tail: combine(tail[0], left, tail[1]), more.value, first.value)
        return ParseResult(value, more.rest)
    return parse


def binary_right(base: Parser, combine: Callable[[Any, Any], Any]) -> Parser:
    """Parse ``base base*`` with no separator and fold to the right"""
    items = fail_on_empty(many(base))

    def parse(text: str) -> Optional[ParseResult]:
        result = items(text)
        if result is None:
            return None
        values = result.value
        value = reduce(lambda right, left: combine(left, right), reversed(values[:-1]), values[-1])
        return ParseResult(value, result.rest)
    return parse


def keyword(parser: Parser, word: str) -> Parser:
    """Match a name token equal to word"""
    def parse(text: str) -> Optional[ParseResult]:
        result = parser(text)
        if result is None or result.value != word:
            return None
        return result
    return parse


def brackets(open_symbol: Parser, inner: Parser, close_symbol: Parser) -> Parser:
    """Match open_symbol, inner, close_symbol; keep the inner value"""
    def parse(text: str) -> Optional[ParseResult]:
        opened = open_symbol(text)
        if opened is None:
            return None
        body = inner(opened.rest)
        if body is None:
            return None
        closed = close_symbol(body.rest)
        if closed is None:
            return None
        return ParseResult(body.value, closed.rest)
    return parse


def at_eof(parser: Parser) -> Parser:
    """Succeed only when parser consumes the whole input"""
    def parse(text: str) -> Optional[ParseResult]:
        result = parser(text)
        if result is None or result.rest:
            return None
        return result
    return parse


def consumed(text: str, result: ParseResult) -> int:
    """Number of characters of text a match used"""
    return len(text) - len(result.rest)
