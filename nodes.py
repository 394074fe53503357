"""
Logo Abstract Syntax Tree
Immutable node types produced by the grammar and walked by the interpreter
"""

from typing import Iterator, Tuple, Union
from dataclasses import dataclass, fields


# ============================================================================
# ARITHMETIC AND BOOLEAN EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class Constant:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Sub:
    left: 'AExp'
    right: 'AExp'


@dataclass(frozen=True)
class Div:
    left: 'AExp'
    right: 'AExp'


AExp = Union[Constant, Variable, Sub, Div]


@dataclass(frozen=True)
class Eq:
    """Numeric equality of two arithmetic expressions"""
    left: AExp
    right: AExp


BExp = Eq


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class Forward:
    pixels: AExp


@dataclass(frozen=True)
class Rotate:
    degrees: AExp


@dataclass(frozen=True)
class SetHeading:
    degrees: AExp


@dataclass(frozen=True)
class Sequence:
    first: 'Statement'
    second: 'Statement'


@dataclass(frozen=True)
class Repeat:
    times: AExp
    body: 'Statement'


@dataclass(frozen=True)
class Function:
    """Procedure definition: ``to NAME :PARAM ... BODY end``"""
    name: str
    params: Tuple[str, ...]
    body: 'Statement'


@dataclass(frozen=True)
class Call:
    name: str
    args: Tuple[AExp, ...]


@dataclass(frozen=True)
class If:
    condition: BExp
    body: 'Statement'


@dataclass(frozen=True)
class Stop:
    pass


Statement = Union[Forward, Rotate, SetHeading, Sequence, Repeat, Function, Call, If, Stop]


# ============================================================================
# TREE UTILITIES
# ============================================================================

def sequence_of(*statements: Statement) -> Statement:
    """Right-nested Sequence of one or more statements, as the grammar builds it"""
    if not statements:
        raise ValueError("sequence_of needs at least one statement")
    result = statements[-1]
    for statement in reversed(statements[:-1]):
        result = Sequence(statement, result)
    return result


def flatten_sequence(statement: Statement) -> Iterator[Statement]:
    """Yield the statements of a right-nested Sequence chain in order"""
    while isinstance(statement, Sequence):
        yield from flatten_sequence(statement.first)
        statement = statement.second
    yield statement


def iter_nodes(node) -> Iterator:
    """Depth-first walk over a node and all of its descendants"""
    yield node
    for field in fields(node):
        child = getattr(node, field.name)
        if isinstance(child, tuple):
            for item in child:
                if not isinstance(item, str):
                    yield from iter_nodes(item)
        elif not isinstance(child, (str, int, float)):
            yield from iter_nodes(child)


def find_nodes_by_type(node, node_type: type) -> list:
    """Find all nodes of a specific type in a tree"""
    return [n for n in iter_nodes(node) if isinstance(n, node_type)]


def pretty_print_ast(node, indent: int = 0) -> str:
    """Pretty print a node for debugging"""
    pad = "  " * indent
    name = type(node).__name__
    if isinstance(node, Constant):
        return f"{pad}{name}({node.value!r})\n"
    if isinstance(node, Variable):
        return f"{pad}{name}({node.name})\n"
    if isinstance(node, Sequence):
        return "".join(pretty_print_ast(s, indent) for s in flatten_sequence(node))

    result = pad + name
    if isinstance(node, Function):
        result += f"({node.name}{''.join(' :' + p for p in node.params)})"
    elif isinstance(node, Call):
        result += f"({node.name})"
    result += "\n"

    for field in fields(node):
        child = getattr(node, field.name)
        if isinstance(child, tuple):
            for item in child:
                if not isinstance(item, str):
                    result += pretty_print_ast(item, indent + 1)
        elif not isinstance(child, str):
            result += pretty_print_ast(child, indent + 1)
    return result
