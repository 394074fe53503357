"""
Logo Language Parser
Grammar for the turtle language built from the combinators, plus the parser
front-end that turns failures into located errors
"""

from typing import Optional

from combinators import (
    ParseResult, Parser, satisfy, pmap, many, seq, choice, lazy, lexeme, span,
    binary_left, binary_right, keyword, brackets, at_eof, parse_spaces
)
from nodes import (
    AExp, Statement, Constant, Variable, Sub, Div, Eq, Forward, Rotate,
    SetHeading, Sequence, Repeat, Function, Call, If, Stop, flatten_sequence
)
from error_handling import LogoErrorHandler, LogoParseError


RESERVED_WORDS = frozenset(["to", "end", "if", "stop", "repeat", "fd", "rt", "seth"])


def is_alpha(char: str) -> bool:
    return ('A' <= char <= 'Z') or ('a' <= char <= 'z')


def is_digit(char: str) -> bool:
    return '0' <= char <= '9'


def symbol(char: str) -> Parser:
    """A single symbol character followed by optional whitespace"""
    return lexeme(satisfy(lambda c: c == char))


def unreserved(parser: Parser) -> Parser:
    """Reject names from the reserved word set"""
    def parse(text: str) -> Optional[ParseResult]:
        result = parser(text)
        if result is None or result.value in RESERVED_WORDS:
            return None
        return result
    return parse


class LogoGrammar:
    """Logo grammar definition using the combinator core"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup tokens, expressions and statements"""

        # Tokens
        self.number = span(satisfy(is_digit), lambda ds: int(''.join(ds)))
        self.name = span(satisfy(is_alpha), ''.join, require_space=True)
        # ':' must touch the name; the name itself needs no trailing space so ':n-1' works
        self.variable = pmap(
            seq(satisfy(lambda c: c == ':'), span(satisfy(is_alpha), ''.join)),
            lambda parts: parts[1]
        )

        # Arithmetic: division folds inside subtraction
        atom = choice([
            pmap(self.number, Constant),
            pmap(self.variable, Variable),
        ])
        term = binary_left(atom, symbol('/'), lambda _, left, right: Div(left, right))
        self.aexp = binary_left(term, symbol('-'), lambda _, left, right: Sub(left, right))

        self.bexp = pmap(
            seq(self.aexp, symbol('='), self.aexp),
            lambda parts: Eq(parts[0], parts[2])
        )

        # Statements (mutually recursive through brackets, repeat, if and to)
        statement = lazy(lambda: self.statement)
        statements = lazy(lambda: self.statements)

        def command(word: str, node_type) -> Parser:
            return pmap(seq(keyword(self.name, word), self.aexp), lambda parts: node_type(parts[1]))

        forward = command("fd", Forward)
        rotate = command("rt", Rotate)
        set_heading = command("seth", SetHeading)

        repeat = pmap(
            seq(keyword(self.name, "repeat"), self.aexp, statement),
            lambda parts: Repeat(parts[1], parts[2])
        )

        procedure = pmap(
            seq(keyword(self.name, "to"), unreserved(self.name), many(self.variable),
                statements, keyword(self.name, "end")),
            lambda parts: Function(parts[1], tuple(parts[2]), parts[3])
        )

        conditional = pmap(
            seq(keyword(self.name, "if"), self.bexp, statement),
            lambda parts: If(parts[1], parts[2])
        )

        stop = pmap(keyword(self.name, "stop"), lambda _: Stop())

        call = pmap(
            seq(unreserved(self.name), many(self.aexp)),
            lambda parts: Call(parts[0], tuple(parts[1]))
        )

        block = brackets(symbol('['), statements, symbol(']'))

        # Ordered choice; every keyword alternative checks its exact word
        self.statement = choice([
            forward,
            rotate,
            set_heading,
            repeat,
            procedure,
            conditional,
            stop,
            call,
            block,
        ])
        self.statements = binary_right(self.statement, Sequence)

        self.program = pmap(
            at_eof(seq(parse_spaces, self.statements)),
            lambda parts: parts[1]
        )
        self.expression = pmap(
            at_eof(seq(parse_spaces, self.aexp)),
            lambda parts: parts[1]
        )

    def parse_program(self, text: str) -> Optional[ParseResult]:
        """Parse a whole program; None unless every character is consumed"""
        return self.program(text)

    def error_location(self, text: str) -> int:
        """Offset where the longest run of complete statements stops"""
        prefix = many(self.statement)(parse_spaces(text).rest)
        return len(text) - len(prefix.rest)


class LogoParser:
    """Parser front-end: raises LogoParseError instead of returning None"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = LogoGrammar(debug)

    def parse_file(self, filepath: str) -> Statement:
        """Parse a Logo source file"""
        return self.parse_string(read_source(filepath), filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> Statement:
        """Parse Logo source code from string"""
        try:
            result = self.grammar.parse_program(text)
        except RecursionError:
            handler = LogoErrorHandler(text, filename, RESERVED_WORDS)
            raise handler.error_at(0, "Program nested too deeply to parse")
        if result is None:
            handler = LogoErrorHandler(text, filename, RESERVED_WORDS)
            location = self.grammar.error_location(text)
            message = "Empty program" if not text.strip() else "Invalid statement"
            raise handler.error_at(location, message)

        if self.debug:
            count = len(list(flatten_sequence(result.value)))
            print(f"Parsed {count} top-level statements from {filename}")
        return result.value

    def parse_expression(self, text: str, filename: str = "<input>") -> AExp:
        """Parse a single arithmetic expression"""
        result = self.grammar.expression(text)
        if result is None:
            handler = LogoErrorHandler(text, filename, RESERVED_WORDS)
            raise handler.error_at(0, "Invalid arithmetic expression")
        return result.value


def read_source(filepath: str) -> str:
    """Read program text, reporting file problems as parse errors"""
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError:
        raise LogoParseError(f"File not found: {filepath}")
    except UnicodeDecodeError as e:
        raise LogoParseError(f"Cannot decode file {filepath}: {e}")


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> LogoParser:
    """Create a Logo parser"""
    return LogoParser(debug=debug)


def create_debug_parser() -> LogoParser:
    """Create a Logo parser with debug enabled"""
    return LogoParser(debug=True)


_default_grammar = LogoGrammar()


def parse_program(text: str) -> Optional[ParseResult]:
    """Top-level contract: the parsed statement and remaining input, or None"""
    return _default_grammar.parse_program(text)


# ============================================================================
# CANONICAL RENDERING
# ============================================================================

def format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def unparse_aexp(expr: AExp) -> str:
    """
    Render an arithmetic expression without parentheses.

    The grammar has no grouping, so only trees the left folds can produce are
    accepted: a right operand of '-' is never a Sub, and the operands of '/'
    are atoms or (on the left) another Div. Anything else raises ValueError.
    """
    if isinstance(expr, Constant):
        value = expr.value
        if isinstance(value, bool) or value < 0 or float(value) != int(value):
            raise ValueError(f"Constant {value!r} has no source form")
        return format_number(value)
    if isinstance(expr, Variable):
        return f":{expr.name}"
    if isinstance(expr, Div):
        if isinstance(expr.left, Sub) or isinstance(expr.right, (Sub, Div)):
            raise ValueError(f"Division operands need grouping: {expr!r}")
        return f"{unparse_aexp(expr.left)} / {unparse_aexp(expr.right)}"
    if isinstance(expr, Sub):
        if isinstance(expr.right, Sub):
            raise ValueError(f"Right operand of '-' needs grouping: {expr!r}")
        return f"{unparse_aexp(expr.left)} - {unparse_aexp(expr.right)}"
    raise TypeError(f"Not an arithmetic expression: {expr!r}")


def _unparse_single(statement: Statement) -> str:
    # repeat and if take one statement; sequences need a block
    if isinstance(statement, Sequence):
        return f"[{unparse(statement)}]"
    return unparse(statement)


def unparse(statement: Statement) -> str:
    """Render a statement as source text that parses back to the same tree.

    Raises ValueError for expressions that cannot be written without grouping.
    """
    if isinstance(statement, Forward):
        return f"fd {unparse_aexp(statement.pixels)}"
    if isinstance(statement, Rotate):
        return f"rt {unparse_aexp(statement.degrees)}"
    if isinstance(statement, SetHeading):
        return f"seth {unparse_aexp(statement.degrees)}"
    if isinstance(statement, Sequence):
        return f"{_unparse_single(statement.first)} {unparse(statement.second)}"
    if isinstance(statement, Repeat):
        return f"repeat {unparse_aexp(statement.times)} {_unparse_single(statement.body)}"
    if isinstance(statement, Function):
        params = "".join(f" :{p}" for p in statement.params)
        return f"to {statement.name}{params} {unparse(statement.body)} end"
    if isinstance(statement, Call):
        return " ".join([statement.name] + [unparse_aexp(a) for a in statement.args])
    if isinstance(statement, If):
        condition = statement.condition
        return (f"if {unparse_aexp(condition.left)} = {unparse_aexp(condition.right)} "
                f"{_unparse_single(statement.body)}")
    if isinstance(statement, Stop):
        return "stop"
    raise TypeError(f"Not a statement: {statement!r}")
