"""
SketchScript AST nodes

Each node owns its children (no sharing, no cycles) and records the 1-based
line and column of the token that starts it.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field


@dataclass
class ASTNode:
    """Base AST node"""
    line: int = field(default=0, kw_only=True)
    column: int = field(default=0, kw_only=True)


# ============================================================================
# Expressions
# ============================================================================

@dataclass
class Literal(ASTNode):
    """Number, string, boolean or null literal"""
    value: Any


@dataclass
class Variable(ASTNode):
    """Variable reference"""
    name: str


@dataclass
class Unary(ASTNode):
    """Unary operation: -x, !x, not x"""
    op: str
    operand: ASTNode


@dataclass
class Binary(ASTNode):
    """Arithmetic or comparison operation"""
    op: str
    left: ASTNode
    right: ASTNode


@dataclass
class Logical(ASTNode):
    """Short-circuit 'and' / 'or'"""
    op: str
    left: ASTNode
    right: ASTNode


@dataclass
class Call(ASTNode):
    """Function call"""
    callee: ASTNode
    args: List[ASTNode]


@dataclass
class Member(ASTNode):
    """Property access: obj.name"""
    target: ASTNode
    name: str


@dataclass
class Index(ASTNode):
    """Subscript: list[i], obj["key"]"""
    target: ASTNode
    index: ASTNode


@dataclass
class ArrayLiteral(ASTNode):
    """List literal: [a, b, c]"""
    elements: List[ASTNode]


@dataclass
class ObjectLiteral(ASTNode):
    """Map literal: {name: "Ada", x: 10}"""
    fields: Dict[str, ASTNode]


# ============================================================================
# Statements
# ============================================================================

@dataclass
class Block(ASTNode):
    """Sequence of statements (never a new scope)"""
    statements: List[ASTNode]


@dataclass
class ExprStmt(ASTNode):
    """Expression evaluated for its side effects"""
    expr: ASTNode


@dataclass
class Assign(ASTNode):
    """Assignment to a variable, member or index target

    op is '=' or a compound operator ('+=', ...). declare marks var/let forms.
    """
    target: ASTNode
    value: Optional[ASTNode]
    op: str = '='
    declare: bool = False


@dataclass
class FunctionDecl(ASTNode):
    """Named function declaration"""
    name: str
    params: List[str]
    body: Block


@dataclass
class If(ASTNode):
    """Conditional; else_body holds a nested If for else-if chains"""
    condition: ASTNode
    then_body: Block
    else_body: Optional[Block] = None


@dataclass
class While(ASTNode):
    """while cond do ... end / while (cond) { ... }"""
    condition: ASTNode
    body: Block


@dataclass
class For(ASTNode):
    """Counted loop: for i = start, stop[, step], inclusive of stop"""
    var: str
    start: ASTNode
    stop: ASTNode
    step: Optional[ASTNode]
    body: Block


@dataclass
class CFor(ASTNode):
    """C-style loop: for (init; condition; update) { ... }"""
    init: Optional[ASTNode]
    condition: Optional[ASTNode]
    update: Optional[ASTNode]
    body: Block


@dataclass
class Return(ASTNode):
    """return [expr]"""
    value: Optional[ASTNode] = None


__all__ = [
    'ASTNode', 'Literal', 'Variable', 'Unary', 'Binary', 'Logical', 'Call',
    'Member', 'Index', 'ArrayLiteral', 'ObjectLiteral',
    'Block', 'ExprStmt', 'Assign', 'FunctionDecl', 'If', 'While', 'For',
    'CFor', 'Return',
]
