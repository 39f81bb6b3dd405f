from dataclasses import dataclass
from typing import Any, Optional

from variables import Variable

# =====================================================
# Visitor base (despacho por nombre de clase)
# =====================================================
class Visitor:
    def visit(self, n, *args, **kwargs):
        method = getattr(self, f"_visit_{n.__class__.__name__}", None)
        if method is None:
            return self.generic_visit(n, *args, **kwargs)
        return method(n, *args, **kwargs)

    def generic_visit(self, n, *args, **kwargs):
        raise TypeError(f"{self.__class__.__name__} no sabe visitar {n.__class__.__name__}")

# =====================================================
# Nodos base
# =====================================================
@dataclass
class Node:
    def accept(self, v: Visitor, *args, **kwargs):
        return v.visit(self, *args, **kwargs)

    def pretty(self, label=None):
        from rich.tree import Tree
        label = label or self.__class__.__name__
        tree = Tree(label)

        for name, value in self.__dict__.items():
            # Variables: una sola línea con su declaración
            if isinstance(value, Variable):
                tree.add(f"{name}: {value.declaration()}")
                continue

            if isinstance(value, Node):
                tree.add(value.pretty(f"{name}: {value.__class__.__name__}"))
            elif isinstance(value, (list, tuple)):
                sub = tree.add(f"{name}[]")
                for v in value:
                    if isinstance(v, Node):
                        sub.add(v.pretty())
                    else:
                        sub.add(str(v))
            else:
                tree.add(f"{name}: {value!r}")

        return tree


@dataclass
class ExprNode(Node):
    pass

# =====================================================
# Expresiones del diagrama
# =====================================================
@dataclass
class Literal(ExprNode):
    value: Any = None
    type: str = "string"     # 'integer' | 'float' | 'boolean' | 'string'

@dataclass
class Identifier(ExprNode):
    name: str = ""
    variable: Optional[Variable] = None

@dataclass
class UnaryOp(ExprNode):
    op: str = ""             # '!' | '-' | '+'
    operand: ExprNode = None

@dataclass
class BinaryOp(ExprNode):
    op: str = ""
    left: ExprNode = None
    right: ExprNode = None

@dataclass
class MemberAccess(ExprNode):
    object: Identifier = None
    index: ExprNode = None

@dataclass
class FunctionCall(ExprNode):
    name: str = ""           # 'integer' | 'float' | 'string' | 'boolean'
    argument: ExprNode = None

CAST_FUNCTIONS = ("integer", "float", "string", "boolean")
