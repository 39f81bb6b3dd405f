# -*- coding: utf-8 -*-
# Parser para PLY: construye el AST de una expresión a partir de sus elementos
# (literal / operador / variable / función) ya tipados por el editor.

import logging
import re

import ply.yacc as yacc
from ply.lex import LexToken

from errors import ParseError
from model  import Literal, Identifier, UnaryOp, BinaryOp, MemberAccess, FunctionCall

log = logging.getLogger(__name__)

# Configuración del log de PLY: solo errores reales de la gramática
_ply_log = logging.getLogger("ply")
_ply_log.setLevel(logging.ERROR)

OPERATORS = {
    "==": "EQ",  "!=": "NE",  "<": "LT",  ">": "GT",  "<=": "LE",  ">=": "GE",
    "||": "LOR", "&&": "LAND",
    "+": "PLUS", "-": "MINUS", "*": "TIMES", "/": "DIVIDE", "%": "MOD",
    "!": "NOT",
    "(": "LPAREN", ")": "RPAREN", "[": "LBRACKET", "]": "RBRACKET",
}

tokens = (
    "LITERAL", "VARIABLE", "FUNCTION",
    "EQ", "NE", "LT", "GT", "LE", "GE",
    "LOR", "LAND",
    "PLUS", "MINUS", "TIMES", "DIVIDE", "MOD",
    "NOT",
    "LPAREN", "RPAREN", "LBRACKET", "RBRACKET",
)

_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def infer_literal(text: str) -> Literal:
    """Tipo del literal según su forma: true/false, "texto", 12, 1.5."""
    trimmed = text.strip()
    if trimmed.lower() == "true":
        return Literal(value=True, type="boolean")
    if trimmed.lower() == "false":
        return Literal(value=False, type="boolean")
    if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in "\"'":
        return Literal(value=trimmed[1:-1], type="string")
    if _NUMBER.match(trimmed):
        num = float(trimmed)
        if num.is_integer():
            return Literal(value=int(num), type="integer")
        return Literal(value=num, type="float")
    return Literal(value=text, type="string")

# ----------------------------------------------------------------------
# Gramática (de menor a mayor precedencia)
# ----------------------------------------------------------------------
def p_expression_relational(p):
    """expression : expression EQ disjunction
                  | expression NE disjunction
                  | expression LT disjunction
                  | expression GT disjunction
                  | expression LE disjunction
                  | expression GE disjunction"""
    p[0] = BinaryOp(op=p[2], left=p[1], right=p[3])

def p_expression(p):
    "expression : disjunction"
    p[0] = p[1]

def p_disjunction(p):
    """disjunction : disjunction LOR conjunction
                   | conjunction"""
    p[0] = BinaryOp(op=p[2], left=p[1], right=p[3]) if len(p) == 4 else p[1]

def p_conjunction(p):
    """conjunction : conjunction LAND additive
                   | additive"""
    p[0] = BinaryOp(op=p[2], left=p[1], right=p[3]) if len(p) == 4 else p[1]

def p_additive(p):
    """additive : additive PLUS multiplicative
                | additive MINUS multiplicative
                | multiplicative"""
    p[0] = BinaryOp(op=p[2], left=p[1], right=p[3]) if len(p) == 4 else p[1]

def p_multiplicative(p):
    """multiplicative : multiplicative TIMES unary
                      | multiplicative DIVIDE unary
                      | multiplicative MOD unary
                      | unary"""
    p[0] = BinaryOp(op=p[2], left=p[1], right=p[3]) if len(p) == 4 else p[1]

def p_unary(p):
    """unary : NOT unary
             | MINUS unary
             | PLUS unary"""
    p[0] = UnaryOp(op=p[1], operand=p[2])

def p_unary_primary(p):
    "unary : primary"
    p[0] = p[1]

def p_primary_literal(p):
    "primary : LITERAL"
    p[0] = p[1]

def p_primary_variable(p):
    "primary : VARIABLE"
    p[0] = Identifier(name=p[1].name, variable=p[1])

def p_primary_subscript(p):
    "primary : VARIABLE LBRACKET expression RBRACKET"
    var = p[1]
    if not var.is_array:
        raise ParseError(f'Variable "{var.name}" is not an array and cannot be indexed.')
    p[0] = MemberAccess(object=Identifier(name=var.name, variable=var.base()), index=p[3])

def p_primary_function(p):
    "primary : FUNCTION"
    name, argument = p[1]
    p[0] = FunctionCall(name=name, argument=argument)

def p_primary_group(p):
    "primary : LPAREN expression RPAREN"
    p[0] = p[2]

def p_error(p):
    if p is None:
        raise ParseError("Unexpected end of expression")
    raise ParseError(f"Unexpected token '{_show(p)}'")


def _show(tok) -> str:
    if tok.type == "VARIABLE":
        return tok.value.name
    if tok.type == "LITERAL":
        return str(tok.value.value)
    if tok.type == "FUNCTION":
        return f"{tok.value[0]}(...)"
    return str(tok.value)

# ----------------------------------------------------------------------
# Elementos -> tokens de PLY
# ----------------------------------------------------------------------
class ElementStream:
    """Adaptador tipo lexer: entrega a yacc los elementos ya convertidos."""

    def __init__(self, toks):
        self._toks = list(toks)
        self._pos = 0
        self.lineno = 1

    def token(self):
        if self._pos >= len(self._toks):
            return None
        tok = self._toks[self._pos]
        self._pos += 1
        return tok


def _tok(type_, value, pos) -> LexToken:
    t = LexToken()
    t.type = type_
    t.value = value
    t.lineno = 1
    t.lexpos = pos
    return t


def to_tokens(elements):
    toks = []
    for pos, e in enumerate(elements):
        if e.type == "literal":
            toks.append(_tok("LITERAL", infer_literal(e.value), pos))
        elif e.type == "variable":
            if e.variable is None:
                raise ParseError(f'Variable element "{e.value}" has no variable attached.')
            toks.append(_tok("VARIABLE", e.variable, pos))
        elif e.type == "function":
            nested = e.nested_expression.right_side if e.nested_expression is not None else ()
            # El argumento se resuelve aparte (nunca se reentra en el parser)
            toks.append(_tok("FUNCTION", (e.value, parse(nested)), pos))
        elif e.type == "operator":
            kind = OPERATORS.get(e.value)
            if kind is None:
                raise ParseError(f"Unknown operator '{e.value}'")
            toks.append(_tok(kind, e.value, pos))
        else:
            raise ParseError(f"Unknown element type '{e.type}'")
    return toks


_CLOSERS = {"LPAREN": ("RPAREN", ")"), "LBRACKET": ("RBRACKET", "]")}


def _check_delimiters(toks):
    stack = []
    for t in toks:
        if t.type in _CLOSERS:
            stack.append(t.type)
        elif t.type in ("RPAREN", "RBRACKET"):
            if not stack:
                raise ParseError(f"Unexpected token '{t.value}'")
            expected, sym = _CLOSERS[stack.pop()]
            if t.type != expected:
                raise ParseError(f"Expected '{sym}' but found '{t.value}'")
    if stack:
        opener = stack[-1]
        if opener == "LBRACKET":
            raise ParseError("Expected ']' after index expression")
        raise ParseError("Expected ')' after expression")


_parser = yacc.yacc(debug=False, write_tables=False, errorlog=_ply_log)


def parse(elements):
    """Secuencia de elementos -> AST de la expresión (ParseError si está mal formada)."""
    elements = list(elements)
    if not elements:
        raise ParseError("Unexpected end of expression")
    toks = to_tokens(elements)
    _check_delimiters(toks)
    ast = _parser.parse(lexer=ElementStream(toks))
    log.debug("expresión %s -> %s", [e.value for e in elements], ast.__class__.__name__)
    return ast
