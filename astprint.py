# astprint.py
# -----------------------------------------------------------------------------
# 1) ASTPrinter (Graphviz)  -> AST generado como .dot + imagen (png/svg/pdf)
# 2) CFGPrinter (Graphviz)  -> el diagrama como grafo de control, con bucles
# 3) print_rich_tree(ast)   -> helper para imprimir el rich.Tree
# -----------------------------------------------------------------------------

from typing import Dict, FrozenSet, Optional

from graphviz import Digraph
from rich.console import Console

from flowgraph import CFG, ConditionalNode, StartNode, EndNode
from model import Node, Visitor
from pyast import *

# =============================================================================
# 1) GRAPHVIZ: AST -> Digraph
# =============================================================================

class ASTPrinter(Visitor):
    node_defaults = {
        "shape": "ellipse",
        "color": "purple",
        "style": "filled",
    }
    edge_defaults = {"arrowhead": "normal"}

    def __init__(self):
        self.dot = Digraph("AST")
        self.dot.attr("node", **self.node_defaults)
        self.dot.attr("edge", **self.edge_defaults)
        self._seq = 0

    @property
    def name(self):
        self._seq += 1
        return f"n{self._seq:05d}"

    @classmethod
    def render(cls, n: Node) -> Digraph:
        p = cls()
        n.accept(p)
        return p.dot

    # ---- helpers -------------------------------------------------------------
    def _new(self, label: str, **attrs) -> str:
        nid = self.name
        self.dot.node(nid, label=label, **attrs)
        return nid

    def _edge(self, a: str, b: str, label: Optional[str] = None):
        if label is None:
            self.dot.edge(a, b)
        else:
            self.dot.edge(a, b, label=label)

    def _stmt(self, kind: str, n: PyNode) -> str:
        # las sentencias llevan el bloque de origen en la etiqueta
        label = kind if n.provenance is None else f"{kind}\\n[{n.provenance.text}]"
        return self._new(label, shape="box")

    def _block(self, parent: str, label: str, stmts):
        if stmts is None:
            return
        blk = self._new(label, shape="folder")
        self._edge(parent, blk)
        for s in stmts:
            self._edge(blk, s.accept(self))

    # ---- Programa / Sentencias -----------------------------------------------
    def _visit_Program(self, n: Program):
        me = self._new("Program")
        for s in n.body:
            self._edge(me, s.accept(self))
        return me

    def _visit_Assignment(self, n: Assignment):
        me = self._stmt("=", n)
        self._edge(me, n.target.accept(self), "target")
        self._edge(me, n.value.accept(self), "value")
        return me

    def _visit_If(self, n: If):
        me = self._stmt("If", n)
        self._edge(me, n.test.accept(self), "test")
        self._block(me, "then", n.then)
        self._block(me, "else", n.orelse)
        return me

    def _visit_While(self, n: While):
        me = self._stmt("While", n)
        self._edge(me, n.test.accept(self), "test")
        self._block(me, "body", n.body)
        return me

    def _visit_Print(self, n: Print):
        me = self._stmt("Print", n)
        for a in n.args:
            self._edge(me, a.accept(self))
        return me

    def _visit_Break(self, n: Break):
        return self._stmt("Break", n)

    def _visit_Unsupported(self, n: Unsupported):
        return self._new(f"Unsupported\\n{n.reason}", shape="note", color="red")

    # ---- Expresiones ---------------------------------------------------------
    def _visit_Identifier(self, n: Identifier):
        return self._new(f"Id({n.name})")

    def _visit_Literal(self, n: Literal):
        return self._new(n.raw)

    def _visit_BinaryExpr(self, n: BinaryExpr):
        me = self._new(n.op, shape="circle")
        self._edge(me, n.left.accept(self))
        self._edge(me, n.right.accept(self))
        return me

    def _visit_Call(self, n: Call):
        me = self._new(f"Call\\n{n.callee.name}")
        for a in n.args:
            self._edge(me, a.accept(self))
        return me

    def _visit_Subscript(self, n: Subscript):
        me = self._new("[]", shape="circle")
        self._edge(me, n.object.accept(self), "object")
        self._edge(me, n.index.accept(self), "index")
        return me

# =============================================================================
# 2) GRAPHVIZ: CFG -> Digraph
# =============================================================================

class CFGPrinter:
    """
    Dibuja el diagrama tal como lo ve el compilador. Las cabeceras de
    bucle van en doble octágono y las aristas de retroceso punteadas.
    """
    node_defaults = {"style": "filled", "color": "lightblue"}

    def __init__(self, cfg: CFG, loops: Optional[Dict[str, FrozenSet[str]]] = None):
        self.cfg = cfg
        self.loops = loops or {}
        self.dot = Digraph("CFG")
        self.dot.attr("node", **self.node_defaults)

    @classmethod
    def render(cls, cfg: CFG, loops=None) -> Digraph:
        p = cls(cfg, loops)
        p.draw()
        return p.dot

    def _shape(self, node) -> str:
        if node.id in self.loops:
            return "doubleoctagon"
        if isinstance(node, ConditionalNode):
            return "diamond"
        if isinstance(node, (StartNode, EndNode)):
            return "oval"
        return "box"

    def _back_edges(self):
        back = set()
        for header, body in self.loops.items():
            for p in self.cfg.predecessors(header):
                if p in body:
                    back.add((p, header))
        return back

    def draw(self):
        back = self._back_edges()
        for nid, node in self.cfg.nodes.items():
            self.dot.node(nid, label=f"{node.kind}\\n{node.label}", shape=self._shape(node))
        for edges in self.cfg.succ.values():
            for e in edges:
                attrs = {"style": "dashed"} if (e.source, e.target) in back else {}
                if e.label:
                    attrs["label"] = e.label
                self.dot.edge(e.source, e.target, **attrs)

# =============================================================================
# 3) Helper: Rich tree
# =============================================================================
def print_rich_tree(ast: Node, console: Optional[Console] = None) -> None:
    (console or Console()).print(ast.pretty())
