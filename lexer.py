# lexer.py
#
# Analizador léxico para expresiones escritas como texto: convierte
# "arr[i + 1] * integer(x) > 3" en la secuencia de elementos del editor.

import itertools
import logging

import ply.lex as lex               # PLY: framework tipo Lex/Yacc para Python
from tabulate import tabulate       # Imprimir la tabla de elementos en formato "grid"

from errors import ParseError
from expression import ExpressionElement, Expression
from model import CAST_FUNCTIONS

log = logging.getLogger(__name__)

tokens = ("NAME", "NUMBER", "STRING", "OP")

t_ignore = " \t\r\n"               # Espacios en blanco: no generan tokens

# Operadores compuestos antes que los simples
def t_OP(t):
    r"==|!=|<=|>=|&&|\|\||[-+*/%!<>()\[\]]"
    return t

def t_STRING(t):
    r'"[^"\n]*"|\'[^\'\n]*\''
    return t

def t_NUMBER(t):
    r"(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?"
    return t

def t_NAME(t):
    r"[A-Za-z_][A-Za-z0-9_]*"
    return t

def t_error(t):
    raise ParseError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")


_lexer = lex.lex()


def scan(text: str):
    """Texto -> lista de (tipo, valor) de PLY."""
    lx = _lexer.clone()
    lx.input(text)
    return [(tok.type, tok.value) for tok in iter(lx.token, None)]


class _Builder:
    def __init__(self, raw, by_name, counter=None):
        self.raw = raw
        self.pos = 0
        self.by_name = by_name
        self.counter = counter or itertools.count(1)

    def _id(self, prefix):
        return f"{prefix}-{next(self.counter)}"

    def _closing(self, start, open_sym, close_sym):
        """Posición del delimitador que cierra al abierto en start."""
        depth = 0
        for i in range(start, len(self.raw)):
            _, val = self.raw[i]
            if val == open_sym:
                depth += 1
            elif val == close_sym:
                depth -= 1
                if depth == 0:
                    return i
        raise ParseError(f"Expected '{close_sym}'")

    def _peek(self, offset=0):
        i = self.pos + offset
        return self.raw[i] if i < len(self.raw) else (None, None)

    def build(self):
        out = []
        while self.pos < len(self.raw):
            kind, val = self.raw[self.pos]
            if kind in ("NUMBER", "STRING"):
                out.append(ExpressionElement(self._id("lit"), "literal", val))
            elif kind == "NAME":
                out.append(self._name(val))
                continue
            else:
                out.append(ExpressionElement(self._id("op"), "operator", val))
            self.pos += 1
        return out

    def _nested(self, start, end):
        return _Builder(self.raw[start:end], self.by_name, self.counter).build()

    def _name(self, name):
        nxt = self._peek(1)[1]
        if name in CAST_FUNCTIONS and nxt == "(":
            end = self._closing(self.pos + 1, "(", ")")
            argument = self._nested(self.pos + 2, end)
            self.pos = end + 1
            return ExpressionElement(self._id("fn"), "function", name,
                                     nested_expression=Expression(right_side=tuple(argument)))
        if name.lower() in ("true", "false"):
            self.pos += 1
            return ExpressionElement(self._id("lit"), "literal", name)

        var = self.by_name.get(name)
        if var is None:
            raise ParseError(f'Unknown variable "{name}"')
        if var.is_array and nxt == "[":
            end = self._closing(self.pos + 1, "[", "]")
            index = self._nested(self.pos + 2, end)
            self.pos = end + 1
            return var.indexed(index).element(self._id("var"))
        self.pos += 1
        return var.element(self._id("var"))


def tokenize_expression(text: str, variables=()):
    """Expresión en texto -> lista de ExpressionElement."""
    elements = _Builder(scan(text), {v.name: v for v in variables}).build()
    log.debug("%r -> %d elementos", text, len(elements))
    return elements


def print_tokens(text: str, variables=()):
    rows = [(e.text(), e.value, e.type)                 # Construye filas (texto, valor, tipo)
            for e in tokenize_expression(text, variables)]
    headers = ["TOKEN", "VALOR", "TIPO"]                # Encabezados de la tabla
    print(tabulate(rows, headers=headers, tablefmt="grid"))
