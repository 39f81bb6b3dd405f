# pyast.py: AST del código generado (subconjunto de Python) con su procedencia
from dataclasses import dataclass, field
from typing import Any, List, Optional

from model import Node


@dataclass(frozen=True)
class Provenance:
    node_id: Optional[str] = None
    label: Optional[str] = None      # identificador visible del bloque

    @property
    def text(self) -> str:
        return self.label or self.node_id or "N/A"

    def __str__(self):
        return self.text

# =====================================================
# Base
# =====================================================
@dataclass
class PyNode(Node):
    provenance: Optional[Provenance] = None

@dataclass
class Statement(PyNode):
    pass

@dataclass
class Expr(PyNode):
    pass

@dataclass
class Program(PyNode):
    body: List[Statement] = field(default_factory=list)

# =====================================================
# Sentencias
# =====================================================
@dataclass
class Assignment(Statement):
    target: Expr = None
    value: Expr = None

@dataclass
class If(Statement):
    test: Expr = None
    then: List[Statement] = field(default_factory=list)
    orelse: Optional[List[Statement]] = None

@dataclass
class While(Statement):
    test: Expr = None
    body: List[Statement] = field(default_factory=list)

@dataclass
class Print(Statement):
    args: List[Expr] = field(default_factory=list)

@dataclass
class Break(Statement):
    pass

@dataclass
class Unsupported(Statement):
    reason: str = ""

# =====================================================
# Expresiones
# =====================================================
@dataclass
class Identifier(Expr):
    name: str = ""

@dataclass
class Literal(Expr):
    value: Any = None
    raw: str = "None"

@dataclass
class BinaryExpr(Expr):
    op: str = ""
    left: Expr = None
    right: Expr = None

@dataclass
class Call(Expr):
    callee: Identifier = None
    args: List[Expr] = field(default_factory=list)

@dataclass
class Subscript(Expr):
    object: Expr = None
    index: Expr = None


TRUE = "True"
FALSE = "False"


def true_literal(prov: Optional[Provenance] = None) -> Literal:
    return Literal(value=True, raw=TRUE, provenance=prov)


def false_literal(prov: Optional[Provenance] = None) -> Literal:
    return Literal(value=False, raw=FALSE, provenance=prov)
