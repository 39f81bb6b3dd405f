# emit.py: Impresión del AST generado como texto indentado
from model import Visitor
from pyast import *

INDENT = "  "   # dos espacios por nivel

LOGICAL = {"&&": "and", "||": "or"}


class Emitter(Visitor):
    def emit(self, n, level: int = 0) -> str:
        return n.accept(self, level)

    def _ind(self, level: int) -> str:
        return INDENT * level

    def _header(self, n, level: int) -> str:
        """Comentario de procedencia antes de la sentencia."""
        if n.provenance is None:
            return ""
        return f"{self._ind(level)}# Block ID: {n.provenance.text}\n"

    def _block(self, stmts, level: int) -> str:
        if not stmts:
            return f"{self._ind(level)}pass"
        lines = (self.emit(s, level) for s in stmts)
        return "\n".join(s for s in lines if s.strip())

    # ---- Sentencias ------------------------------------------------------
    def _visit_Program(self, n: Program, level=0):
        lines = (self.emit(s, level) for s in n.body)
        return "\n".join(s for s in lines if s.strip())

    def _visit_Assignment(self, n: Assignment, level=0):
        return f"{self._header(n, level)}{self._ind(level)}{self.emit(n.target)} = {self.emit(n.value)}"

    def _visit_While(self, n: While, level=0):
        code = f"{self._header(n, level)}{self._ind(level)}while {self.emit(n.test)}:\n"
        return code + self._block(n.body, level + 1)

    def _visit_If(self, n: If, level=0):
        code = f"{self._header(n, level)}{self._ind(level)}if {self.emit(n.test)}:\n"
        code += self._block(n.then, level + 1)
        # else vacío: se omite
        if n.orelse:
            code += f"\n{self._ind(level)}else:\n" + self._block(n.orelse, level + 1)
        return code

    def _visit_Print(self, n: Print, level=0):
        args = ", ".join(self.emit(a) for a in n.args)
        return f"{self._header(n, level)}{self._ind(level)}print({args})"

    def _visit_Break(self, n: Break, level=0):
        return f"{self._ind(level)}break"

    def _visit_Unsupported(self, n: Unsupported, level=0):
        block_id = n.provenance.text if n.provenance is not None else "N/A"
        return f"{self._ind(level)}# Unsupported Block ID: {block_id} - {n.reason}"

    # ---- Expresiones -----------------------------------------------------
    def _visit_Identifier(self, n: Identifier, level=0):
        return n.name

    def _visit_Literal(self, n: Literal, level=0):
        return n.raw

    def _visit_BinaryExpr(self, n: BinaryExpr, level=0):
        op = LOGICAL.get(n.op, n.op)
        return f"({self.emit(n.left)} {op} {self.emit(n.right)})"

    def _visit_Call(self, n: Call, level=0):
        args = ", ".join(self.emit(a) for a in n.args)
        return f"{self.emit(n.callee)}({args})"

    def _visit_Subscript(self, n: Subscript, level=0):
        return f"{self.emit(n.object)}[{self.emit(n.index)}]"


def emit(program: Program) -> str:
    return Emitter().emit(program).strip()
