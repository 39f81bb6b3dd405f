# expression.py: Elementos y expresiones del diagrama (asignación / condición / valor)
from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from errors import FlowError, EvalError, ParseError, TypeMismatchError, IndexOutOfBoundsError
from evaluator import Evaluator, compare, to_integer
from model import MemberAccess
from parser import parse
from variables import VARIABLE_TYPES, Variable, Binding, Bindings

log = logging.getLogger(__name__)

ELEMENT_TYPES = ("variable", "operator", "literal", "function")
EQUALITIES = ("==", "!=", ">", "<", ">=", "<=")


@dataclass(frozen=True)
class ExpressionElement:
    id: str
    type: str                      # 'variable' | 'operator' | 'literal' | 'function'
    value: str = ""
    variable: Optional[Variable] = None
    nested_expression: Optional["Expression"] = None

    def __post_init__(self):
        if self.type not in ELEMENT_TYPES:
            raise FlowError(f"Invalid element type: {self.type}")
        if self.type == "variable" and self.variable is not None:
            object.__setattr__(self, "value", self.variable.name)
        if self.type != "variable":
            object.__setattr__(self, "variable", None)
        if self.type == "function" and self.nested_expression is None:
            # Una función siempre tiene su argumento (aunque esté vacío)
            object.__setattr__(self, "nested_expression", Expression())
        if self.type != "function":
            object.__setattr__(self, "nested_expression", None)

    def with_variable(self, variable: Variable) -> "ExpressionElement":
        if self.type != "variable":
            raise FlowError("Cannot set variable on non-variable element")
        return replace(self, variable=variable, value=variable.name)

    def text(self) -> str:
        if self.type == "variable" and self.variable is not None:
            if self.variable.is_indexed:
                index = " ".join(e.text() for e in self.variable.index_expression)
                return f"{self.variable.name}[{index}]"
            return self.variable.name
        if self.type == "function":
            return f"{self.value}({self.nested_expression.text()})"
        return self.value

    def __str__(self):
        return self.text()

    def to_object(self) -> Dict[str, Any]:
        obj = {"id": self.id, "type": self.type, "value": self.value}
        if self.variable is not None:
            obj["variable"] = self.variable.to_object()
        if self.nested_expression is not None:
            obj["nestedExpression"] = self.nested_expression.to_object()
        return obj

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "ExpressionElement":
        variable = Variable.from_object(obj["variable"]) if obj.get("variable") else None
        nested = Expression.from_object(obj["nestedExpression"]) if obj.get("nestedExpression") else None
        return cls(id=obj["id"], type=obj["type"], value=obj.get("value", ""),
                   variable=variable, nested_expression=nested)


def operator(symbol: str, element_id: Optional[str] = None) -> ExpressionElement:
    return ExpressionElement(element_id or f"op-{symbol}", "operator", symbol)


def literal(text, element_id: Optional[str] = None) -> ExpressionElement:
    return ExpressionElement(element_id or f"lit-{text}", "literal", str(text))


def function(name: str, argument, element_id: Optional[str] = None) -> ExpressionElement:
    return ExpressionElement(element_id or f"fn-{name}", "function", name,
                             nested_expression=Expression(right_side=tuple(argument)))

# =====================================================
# Evaluación con tipo esperado
# =====================================================
def coerce(value, vtype: str, expected: str, array_subtype: Optional[str] = None):
    """Ajusta el resultado al tipo destino (idéntico, integer<->float o subtipo de arreglo)."""
    if vtype not in VARIABLE_TYPES:
        raise TypeMismatchError("Cannot assign value from an expression with unknown type.")
    if expected == vtype:
        return value
    if expected == "float" and vtype == "integer":
        return float(value)
    if expected == "integer" and vtype == "float":
        return to_integer(value, value)
    if expected == "array":
        if vtype != array_subtype:
            raise TypeMismatchError(
                f"Type mismatch: Cannot assign a value of type '{vtype}' to a variable of type '{array_subtype}'.")
        return value
    raise TypeMismatchError(
        f"Type mismatch: Cannot assign a value of type '{vtype}' to a variable of type '{expected}'.")


def calculate_value(elements, expected_type: Optional[str], bindings: Bindings,
                    array_subtype: Optional[str] = None):
    elements = tuple(elements)
    if not elements:
        raise EvalError("Expression is empty and cannot be evaluated.")
    value, vtype = Evaluator(bindings).evaluate(parse(elements))
    if expected_type is None:
        return value
    return coerce(value, vtype, expected_type, array_subtype)


@dataclass(frozen=True)
class Expression:
    left_side: Union[Variable, Tuple[ExpressionElement, ...], None] = None
    right_side: Tuple[ExpressionElement, ...] = ()
    equality: Optional[str] = None

    def __post_init__(self):
        if self.equality is not None and self.equality not in EQUALITIES:
            raise FlowError(f"Invalid equality: {self.equality}")
        if self.left_side is not None:
            if self.equality:
                if isinstance(self.left_side, Variable):
                    raise FlowError("leftSide must be a sequence of expression elements")
                object.__setattr__(self, "left_side", tuple(self.left_side))
            elif not isinstance(self.left_side, Variable):
                raise FlowError("leftSide must be a Variable")
        object.__setattr__(self, "right_side", tuple(self.right_side))

    # ---- Forma -----------------------------------------------------------
    @property
    def is_assignment(self) -> bool:
        return isinstance(self.left_side, Variable)

    @property
    def is_condition(self) -> bool:
        return self.equality is not None

    def is_empty(self) -> bool:
        if self.is_condition:
            return len(self.left_side or ()) == 0 and len(self.right_side) == 0
        return self.left_side is None and len(self.right_side) == 0

    def condition_elements(self) -> Tuple[ExpressionElement, ...]:
        """Condición aplanada: izquierda, operador de igualdad, derecha."""
        elems = tuple(self.left_side or ()) if self.is_condition else ()
        if self.equality:
            elems += (operator(self.equality, f"eq-{self.equality}"),)
        return elems + self.right_side

    def text(self) -> str:
        right = " ".join(e.text() for e in self.right_side)
        if self.left_side is None:
            return right
        if self.is_assignment:
            left = ExpressionElement("lhs", "variable", variable=self.left_side).text()
        else:
            left = " ".join(e.text() for e in self.left_side)
        return f"{left} {self.equality or '='} {right}"

    def __str__(self):
        return self.text()

    def find_element(self, element_id: str) -> Optional[ExpressionElement]:
        sides = [self.right_side]
        if self.is_condition:
            sides.insert(0, self.left_side)
        elif self.is_assignment:
            sides.insert(0, self.left_side.index_expression)
        for side in sides:
            for e in side:
                if e.id == element_id:
                    return e
                if e.nested_expression is not None:
                    found = e.nested_expression.find_element(element_id)
                    if found is not None:
                        return found
                if e.variable is not None and e.variable.index_expression:
                    found = Expression(right_side=e.variable.index_expression).find_element(element_id)
                    if found is not None:
                        return found
        return None

    # ---- Evaluación ------------------------------------------------------
    def calculate_value(self, expected_type: Optional[str], bindings: Bindings,
                        array_subtype: Optional[str] = None):
        return calculate_value(self.right_side, expected_type, bindings, array_subtype)

    def evaluate(self, bindings: Bindings) -> bool:
        """Valor de verdad de una condición."""
        if not self.is_condition:
            value, vtype = Evaluator(bindings).evaluate(parse(self.right_side))
            if vtype != "boolean":
                raise TypeMismatchError(f"Condition must evaluate to a boolean, not {vtype}.")
            return value
        if not self.left_side or not self.right_side:
            raise EvalError("Conditional expression sides cannot be empty.")
        ev = Evaluator(bindings)
        left = ev.evaluate(parse(self.left_side))
        right = ev.evaluate(parse(self.right_side))
        return compare(self.equality, left, right)

    def assign_value(self, bindings: Bindings) -> Binding:
        target = self.left_side
        if not isinstance(target, Variable):
            raise FlowError("leftSide must be a Variable")
        if target.is_array:
            if not target.is_indexed:
                raise EvalError(
                    f'Cannot assign directly to array variable "{target.name}". '
                    f"Use array index access instead (e.g., {target.name}[index] = value).")
            return self._assign_element(target, bindings)

        value = self.calculate_value(target.type, bindings)
        return Binding(target, value)

    def _assign_element(self, target: Variable, bindings: Bindings) -> Binding:
        base = target.base()
        tokens = (base.element("lhs"), operator("[", "lhs-open")) \
            + tuple(target.index_expression) + (operator("]", "lhs-close"),)
        access = parse(tokens)
        if not isinstance(access, MemberAccess):
            raise ParseError("Left side of array assignment must be an array access expression (e.g., arr[index])")

        # Arreglo declarado pero sin valor todavía: se inicializa con ceros
        current = bindings.get(base.id)
        if current is None:
            log.debug("arreglo %s sin valor, se inicializa por defecto", base.name)
            current = Binding.from_variable(base)
            bindings = {**bindings, base.id: current}

        array = current.value
        size = current.variable.array_size
        if not isinstance(array, (list, tuple)):
            raise TypeMismatchError(f'Variable "{base.name}" is not a valid array.')
        if len(array) != size:
            raise EvalError(
                f'Array "{base.name}" has incorrect length: expected {size}, but got {len(array)}.')

        index, itype = Evaluator(bindings).evaluate(access.index)
        if itype != "integer":
            raise TypeMismatchError(f'Array index for "{base.name}" must be an integer, but got {itype}.')
        if index < 0 or index >= size:
            raise IndexOutOfBoundsError(f'Array index {index} is out of bounds for "{base.name}" (size {size}).')

        value = calculate_value(self.right_side, current.variable.array_subtype, bindings)
        updated = tuple(array[:index]) + (value,) + tuple(array[index + 1:])
        return Binding(current.variable, updated)

    # ---- (De)serialización -------------------------------------------------
    def to_object(self) -> Dict[str, Any]:
        obj: Dict[str, Any] = {"rightSide": [e.to_object() for e in self.right_side]}
        if isinstance(self.left_side, Variable):
            obj["leftSide"] = self.left_side.to_object()
        elif self.left_side is not None:
            obj["leftSide"] = [e.to_object() for e in self.left_side]
        if self.equality:
            obj["equality"] = self.equality
        return obj

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "Expression":
        left = obj.get("leftSide")
        if isinstance(left, list) and (left or obj.get("equality")):
            left = tuple(ExpressionElement.from_object(e) for e in left)
        elif left:
            left = Variable.from_object(left)
        else:
            left = None
        right = tuple(ExpressionElement.from_object(e) for e in obj.get("rightSide") or ())
        return cls(left_side=left, right_side=right, equality=obj.get("equality"))

# =====================================================
# Operaciones que usa el ejecutor paso a paso
# =====================================================
def evaluate_condition(expression: Expression, bindings: Bindings) -> bool:
    return expression.evaluate(bindings)


def evaluate_value(expression: Expression, expected_type: Optional[str], bindings: Bindings):
    return expression.calculate_value(expected_type, bindings)


def assign(expression: Expression, bindings: Bindings) -> Binding:
    return expression.assign_value(bindings)
