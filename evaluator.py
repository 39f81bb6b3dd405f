'''
Evaluador tipado de expresiones: recorre el AST contra un snapshot de
variables y devuelve siempre el par (valor, tipo).
'''
import math
import re

from errors import (EvalError, TypeMismatchError, DivisionByZeroError,
                    IndexOutOfBoundsError, UnassignedVariableError, ConversionError)
from model import *
from parser import parse
from variables import Bindings, format_value

NUMERIC = ("integer", "float")

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def parse_number(value):
    """Como parseFloat: toma el prefijo numérico del texto, None si no hay."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    m = _FLOAT_PREFIX.match(str(value))
    if not m:
        return None
    return float(m.group(0))


def to_integer(num, source):
    """Piso de un número; infinito o NaN no tienen entero."""
    if not math.isfinite(num):
        raise ConversionError(f"Cannot convert '{source}' to integer.")
    return math.floor(num)


def remainder(lval, rval):
    """Resto truncado: el signo sigue al dividendo (-7 % 3 == -1)."""
    if isinstance(lval, float) or isinstance(rval, float):
        return math.fmod(lval, rval)
    r = abs(lval) % abs(rval)
    return -r if lval < 0 else r


def compare(op, left, right):
    """Operadores relacionales sobre pares (valor, tipo) ya evaluados."""
    lval, ltype = left
    rval, rtype = right
    if ltype == "boolean" and rtype == "boolean" and op not in ("==", "!="):
        raise TypeMismatchError(f'Cannot apply ordering operator "{op}" to booleans.')
    if ltype != rtype and not (ltype in NUMERIC and rtype in NUMERIC):
        raise TypeMismatchError(f"Cannot compare values of different types: {ltype} and {rtype}.")
    if op == "==":
        return lval == rval
    if op == "!=":
        return lval != rval
    if op == ">":
        return lval > rval
    if op == "<":
        return lval < rval
    if op == ">=":
        return lval >= rval
    if op == "<=":
        return lval <= rval
    raise EvalError(f"Unsupported equality operator: {op}")


class Evaluator(Visitor):
    def __init__(self, bindings: Bindings):
        self.bindings = bindings

    def evaluate(self, node):
        return node.accept(self)

    # ---- Hojas ---------------------------------------------------------------
    def _visit_Literal(self, n: Literal):
        return n.value, n.type

    def _visit_Identifier(self, n: Identifier):
        b = self.bindings.get(n.variable.id)
        if b is None:
            raise UnassignedVariableError(f'Variable "{n.name}" does not have a value assigned.')

        # Variable que ya trae su índice (arr[i] armado por el editor)
        if n.variable.is_indexed:
            index = self._index(parse(n.variable.index_expression), n.name)
            return self._element(b, index, n.name)

        return b.value, b.type

    def _visit_MemberAccess(self, n: MemberAccess):
        b = self.bindings.get(n.object.variable.id)
        if b is None:
            raise UnassignedVariableError(f'Variable "{n.object.name}" does not have a value assigned.')
        index = self._index(n.index, n.object.name)
        return self._element(b, index, n.object.name)

    def _index(self, node, name):
        value, vtype = self.evaluate(node)
        if vtype != "integer":
            raise TypeMismatchError(f'Array index for "{name}" must be an integer, but got {vtype}.')
        return value

    def _element(self, b, index, name):
        array = b.value if isinstance(b.value, (list, tuple)) else ()
        size = b.variable.array_size if b.variable.array_size is not None else len(array)
        if index < 0 or index >= size or index >= len(array):
            raise IndexOutOfBoundsError(f'Array index {index} is out of bounds for "{name}" (size {size}).')
        return array[index], b.variable.array_subtype

    # ---- Conversiones --------------------------------------------------------
    def _visit_FunctionCall(self, n: FunctionCall):
        value, vtype = self.evaluate(n.argument)
        if n.name == "integer":
            if vtype == "integer":
                return value, "integer"
            num = parse_number(value)
            if num is None:
                raise ConversionError(f"Cannot convert '{value}' to integer.")
            return to_integer(num, value), "integer"
        if n.name == "float":
            if vtype == "float":
                return value, "float"
            num = parse_number(value)
            if num is None:
                raise ConversionError(f"Cannot convert '{value}' to float.")
            return float(num), "float"
        if n.name == "string":
            return format_value(value), "string"
        if n.name == "boolean":
            if vtype == "boolean":
                return value, "boolean"
            if vtype == "string":
                return value != "", "boolean"
            if vtype in NUMERIC:
                return value != 0, "boolean"
            raise ConversionError(f"Cannot convert '{value}' of type {vtype} to boolean.")
        raise EvalError(f"Unknown function: {n.name}")

    # ---- Operadores ----------------------------------------------------------
    def _visit_UnaryOp(self, n: UnaryOp):
        value, vtype = self.evaluate(n.operand)
        if n.op == "!":
            if vtype != "boolean":
                raise TypeMismatchError(f'Logical NOT operator "!" can only be applied to booleans, not {vtype}.')
            return not value, "boolean"
        if n.op == "-":
            if vtype not in NUMERIC:
                raise TypeMismatchError(f'Unary minus operator "-" can only be applied to numbers, not {vtype}.')
            return -value, vtype
        if n.op == "+":
            if vtype not in NUMERIC:
                raise TypeMismatchError(f'Unary plus operator "+" can only be applied to numbers, not {vtype}.')
            return value, vtype
        raise EvalError(f"Unknown unary operator: {n.op}")

    def _visit_BinaryOp(self, n: BinaryOp):
        left = self.evaluate(n.left)
        right = self.evaluate(n.right)
        lval, ltype = left
        rval, rtype = right
        op = n.op

        if op == "+":
            if ltype == "string" and rtype == "string":
                return lval + rval, "string"
            if ltype in NUMERIC and rtype in NUMERIC:
                result_type = "float" if "float" in (ltype, rtype) else "integer"
                return lval + rval, result_type
            raise TypeMismatchError(f'Cannot apply operator "+" to types {ltype} and {rtype}.')

        if op in ("-", "*", "/", "%"):
            if ltype not in NUMERIC or rtype not in NUMERIC:
                raise TypeMismatchError(f'Cannot apply operator "{op}" to types {ltype} and {rtype}.')
            result_type = "float" if "float" in (ltype, rtype) or op == "/" else "integer"
            if op == "/" and rval == 0:
                raise DivisionByZeroError("Division by zero.")
            if op == "%" and rval == 0:
                raise DivisionByZeroError("Modulo by zero.")
            if op == "-":
                return lval - rval, result_type
            if op == "*":
                return lval * rval, result_type
            if op == "/":
                return lval / rval, result_type
            return remainder(lval, rval), result_type

        if op in ("&&", "||"):
            if ltype != "boolean" or rtype != "boolean":
                raise TypeMismatchError(
                    f'Logical operator "{op}" can only be applied to booleans, not {ltype} and {rtype}.')
            return (lval and rval) if op == "&&" else (lval or rval), "boolean"

        return compare(op, left, right), "boolean"


def evaluate(ast, bindings: Bindings):
    return Evaluator(bindings).evaluate(ast)
