# codegen.py: Síntesis de código estructurado (while / if / break) a partir del CFG
#
# El recorrido es funcional: cada llamada recibe el conjunto de nodos visitados
# y devuelve (sentencias, visitados) sin modificar el que recibió.
import json
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import pyast as py
from analysis import compute_dominators, find_natural_loops
from emit import emit
from errors import FlowError, ParseError
from flowgraph import (CFG, FlowNode, EndNode, AssignVariableNode, InputNode, OutputNode,
                       ConditionalNode, STRAIGHT_NODES, build_cfg)
from model import Visitor
from parser import parse
from variables import Variable

log = logging.getLogger(__name__)

CASTS = {"integer": "int", "string": "str", "float": "float", "boolean": "bool"}
INPUT_CASTS = {"integer": "int", "float": "float", "boolean": "bool"}

Visited = FrozenSet[str]

# =====================================================
# Expresiones del diagrama -> expresiones del destino
# =====================================================
class _Unsupported(Exception):
    pass


class ToPython(Visitor):
    def __init__(self, prov: py.Provenance):
        self.prov = prov

    def convert(self, elements) -> py.Expr:
        elements = tuple(elements)
        if not elements:
            return py.Literal(value=None, raw="None", provenance=self.prov)
        return parse(elements).accept(self)

    def _visit_Literal(self, n):
        if n.type == "boolean":
            return py.Literal(value=n.value, raw=py.TRUE if n.value else py.FALSE, provenance=self.prov)
        if n.type == "string":
            return py.Literal(value=n.value, raw=json.dumps(n.value, ensure_ascii=False), provenance=self.prov)
        if n.value is None:
            return py.Literal(value=None, raw="None", provenance=self.prov)
        return py.Literal(value=n.value, raw=str(n.value), provenance=self.prov)

    def _visit_Identifier(self, n):
        if n.variable is not None and n.variable.is_indexed:
            return py.Subscript(object=py.Identifier(name=n.name, provenance=self.prov),
                                index=self.convert(n.variable.index_expression), provenance=self.prov)
        return py.Identifier(name=n.name, provenance=self.prov)

    def _visit_UnaryOp(self, n):
        operand = n.operand.accept(self)
        if n.op == "!":
            return py.BinaryExpr(op="==", left=operand, right=py.false_literal(self.prov), provenance=self.prov)
        if n.op == "-":
            zero = py.Literal(value=0, raw="0", provenance=self.prov)
            return py.BinaryExpr(op="-", left=zero, right=operand, provenance=self.prov)
        if n.op == "+":
            return operand
        raise _Unsupported(f"Unsupported unary operator: {n.op}")

    def _visit_BinaryOp(self, n):
        left = n.left.accept(self)
        right = n.right.accept(self)
        op = {"&&": "and", "||": "or"}.get(n.op, n.op)
        return py.BinaryExpr(op=op, left=left, right=right, provenance=self.prov)

    def _visit_FunctionCall(self, n):
        argument = n.argument.accept(self)
        callee = py.Identifier(name=CASTS.get(n.name, n.name), provenance=self.prov)
        return py.Call(callee=callee, args=[argument], provenance=self.prov)

    def _visit_MemberAccess(self, n):
        return py.Subscript(object=n.object.accept(self), index=n.index.accept(self), provenance=self.prov)

    def generic_visit(self, n, *args, **kwargs):
        raise _Unsupported(f"Unknown diagram AST node type: {n.__class__.__name__}")

# =====================================================
# Sintetizador
# =====================================================
class Synthesizer:
    def __init__(self, cfg: CFG, loops: Dict[str, FrozenSet[str]]):
        self.cfg = cfg
        self.loops = loops
        self._active: set = set()    # cabeceras cuyo bucle se está generando

    # ---- Utilidades ------------------------------------------------------
    def prov(self, node_id: str) -> py.Provenance:
        return py.Provenance(node_id=node_id, label=self.cfg.label(node_id))

    def unsupported(self, node_id: str, reason: str) -> py.Unsupported:
        return py.Unsupported(reason=reason, provenance=self.prov(node_id))

    def expr(self, elements, node_id: str):
        """Elementos -> expresión destino, o el marcador Unsupported si no se pueden traducir."""
        try:
            return ToPython(self.prov(node_id)).convert(elements)
        except (ParseError, _Unsupported) as e:
            return self.unsupported(node_id, f"Failed to parse expression: {e}")

    def target(self, var: Variable, node_id: str):
        ident = py.Identifier(name=var.name, provenance=self.prov(node_id))
        if var.is_indexed:
            index = self.expr(var.index_expression, node_id)
            if isinstance(index, py.Unsupported):
                return index
            return py.Subscript(object=ident, index=index, provenance=self.prov(node_id))
        return ident

    def condition(self, node: ConditionalNode) -> Tuple[List[py.Statement], py.Expr]:
        """(marcadores previos, prueba); una condición ilegible se reemplaza por None."""
        elements = node.expression.condition_elements() if node.expression is not None else ()
        test = self.expr(elements, node.id)
        if isinstance(test, py.Unsupported):
            return [test], py.Literal(value=None, raw="None", provenance=self.prov(node.id))
        return [], test

    def node_statements(self, node: FlowNode) -> List[py.Statement]:
        """La sentencia propia de un bloque (asignación, lectura o impresión)."""
        prov = self.prov(node.id)

        if isinstance(node, AssignVariableNode):
            e = node.expression
            if e is None or not e.is_assignment:
                return []
            target = self.target(e.left_side, node.id)
            if isinstance(target, py.Unsupported):
                return [target]
            value = self.expr(e.right_side, node.id)
            if isinstance(value, py.Unsupported):
                return [value]
            return [py.Assignment(target=target, value=value, provenance=prov)]

        if isinstance(node, InputNode):
            var = node.variable
            if var is None:
                return []
            target = self.target(var, node.id)
            if isinstance(target, py.Unsupported):
                return [target]
            prompt = f"Enter the value of '{var.name}' by keyboard"
            value = py.Call(callee=py.Identifier(name="input", provenance=prov),
                            args=[py.Literal(value=prompt, raw=json.dumps(prompt, ensure_ascii=False),
                                             provenance=prov)],
                            provenance=prov)
            vtype = var.array_subtype if var.is_array else var.type
            if vtype in INPUT_CASTS:
                value = py.Call(callee=py.Identifier(name=INPUT_CASTS[vtype], provenance=prov),
                                args=[value], provenance=prov)
            return [py.Assignment(target=target, value=value, provenance=prov)]

        if isinstance(node, OutputNode):
            if node.expression is None:
                return [py.Print(args=[], provenance=prov)]
            value = self.expr(node.expression.right_side, node.id)
            if isinstance(value, py.Unsupported):
                return [value]
            return [py.Print(args=[value], provenance=prov)]

        return []

    # ---- Recorrido -------------------------------------------------------
    def lower(self, node_id: str, visited: Visited = frozenset(),
              in_loop: Optional[str] = None) -> Tuple[List[py.Statement], Visited]:
        cfg = self.cfg
        if not node_id or node_id not in cfg.nodes:
            return [py.Unsupported(reason=f"Invalid or missing node ID: {node_id}",
                                   provenance=py.Provenance(node_id, node_id))], visited

        # Cuerpo de un bucle alcanzado desde fuera: lo genera su propia cabecera
        if in_loop is None:
            for header, body in self.loops.items():
                if header != node_id and node_id in body and node_id in cfg.successors(header):
                    return [], visited

        if node_id in self.loops and in_loop != node_id:
            if node_id in self._active:
                # Volver a la cabecera de un bucle en curso
                return [], visited
            self._active.add(node_id)
            try:
                return self.lower_loop(node_id, visited, in_loop)
            finally:
                self._active.discard(node_id)

        if node_id in self.loops and in_loop == node_id:
            return [], visited

        if node_id in visited:
            return [], visited
        visited = visited | {node_id}

        node = cfg.node(node_id)
        method = getattr(self, f"_lower_{node.__class__.__name__}")
        return method(node, visited, in_loop)

    def follow(self, node: FlowNode, stmts, visited: Visited, in_loop):
        """Continúa por el primer sucesor."""
        succs = self.cfg.successors(node.id)
        if succs:
            more, visited = self.lower(succs[0], visited, in_loop)
            stmts = stmts + more
        return stmts, visited

    def _lower_StartNode(self, node, visited, in_loop):
        succs = self.cfg.successors(node.id)
        if not succs:
            return [], visited
        return self.lower(succs[0], visited, in_loop)

    def _lower_EndNode(self, node, visited, in_loop):
        return [], visited

    def _lower_DeclareVariableNode(self, node, visited, in_loop):
        return self.follow(node, [], visited, in_loop)

    def _lower_AssignVariableNode(self, node, visited, in_loop):
        return self.follow(node, self.node_statements(node), visited, in_loop)

    _lower_InputNode = _lower_AssignVariableNode
    _lower_OutputNode = _lower_AssignVariableNode

    def _lower_UnknownNode(self, node, visited, in_loop):
        marker = self.unsupported(node.id, f"Node '{node.kind}' not supported.")
        return self.follow(node, [marker], visited, in_loop)

    # ---- Condicional fuera de bucle (o dentro del cuerpo) ------------------
    def _lower_ConditionalNode(self, node, visited, in_loop):
        cfg = self.cfg
        prefix, test = self.condition(node)
        yes = cfg.branch(node.id, "yes")
        no = cfg.branch(node.id, "no")
        body = self.loops.get(in_loop) if in_loop else None

        merge = self.simple_merge(yes, no, body)
        if merge is not None:
            then = self.node_statements(cfg.node(yes.target))
            orelse = self.node_statements(cfg.node(no.target))
            stmts = prefix + [py.If(test=test, then=then, orelse=orelse, provenance=self.prov(node.id))]
            visited = visited | {yes.target, no.target}
            if merge not in visited:
                more, visited = self.lower(merge, visited, in_loop)
                stmts += more
            return stmts, visited

        then, yes_visited = self.branch(node, yes, visited, in_loop, body)
        orelse, no_visited = self.branch(node, no, visited, in_loop, body)
        visited = visited | (yes_visited & no_visited)
        stmt = py.If(test=test, then=then, orelse=orelse or None, provenance=self.prov(node.id))
        return prefix + [stmt], visited

    def simple_merge(self, yes, no, body) -> Optional[str]:
        """Nodo común cuando ambas ramas son un solo bloque que sigue al mismo sucesor."""
        cfg = self.cfg
        if yes is None or no is None:
            return None
        for t in (yes.target, no.target):
            if not isinstance(cfg.node(t), STRAIGHT_NODES) or t in self.loops:
                return None
        ys, ns = cfg.successors(yes.target), cfg.successors(no.target)
        if not ys or not ns or ys[0] != ns[0]:
            return None
        if body is not None and ys[0] not in body:
            return None
        return ys[0]

    def branch(self, node, edge, visited, in_loop, body):
        cfg = self.cfg
        if edge is None:
            return [], visited
        target = edge.target
        if in_loop is not None and body is not None:
            if target not in body:
                # Salida del bucle
                if isinstance(cfg.node(target), EndNode):
                    return [py.Break(provenance=self.prov(node.id))], visited
                stmts, visited = self.lower(target, visited, None)
                last = stmts[-1].provenance.node_id if stmts and stmts[-1].provenance else target
                if all(s not in body for s in cfg.successors(last)):
                    stmts = stmts + [py.Break(provenance=self.prov(node.id))]
                return stmts, visited
            if target == in_loop:
                return [], visited
        return self.lower(target, visited, in_loop)

    # ---- Bucles ------------------------------------------------------------
    def lower_loop(self, header_id: str, visited: Visited, in_loop: Optional[str]):
        cfg = self.cfg
        header = cfg.node(header_id)
        body = self.loops[header_id]
        prov = self.prov(header_id)
        header_stmts = self.node_statements(header)

        if isinstance(header, ConditionalNode):
            prefix, test = self.condition(header)
            outs = cfg.succ[header_id]
            yes_edges = [e for e in outs if e.label == "yes"]
            no_edges = [e for e in outs if e.label == "no"]
            yes_back = [e for e in yes_edges if e.target in body]
            no_back = [e for e in no_edges if e.target in body]

            preds = cfg.predecessors(header_id)
            if len(preds) == 1:
                # Forma do-while: el predecesor es el cuerpo y la prueba va al final
                if preds[0] in body:
                    log.warning("cabecera %s: su único predecesor %s también cierra el bucle",
                                header_id, preds[0])
                pred_stmts = self.node_statements(cfg.node(preds[0]))
                check = py.If(test=test, then=[], provenance=prov)
                return prefix + [py.While(test=py.true_literal(prov), body=pred_stmts + [check],
                                          provenance=prov)], visited

            if yes_back and not no_back:
                loop_body = self.loop_body(header_stmts, yes_back, header_id)
                stmts = prefix + [py.While(test=test, body=loop_body, provenance=prov)]
                return self.after_loop(stmts, no_edges, body, visited, in_loop)

            if no_back and not yes_back:
                loop_body = self.loop_body(header_stmts, no_back, header_id)
                negated = py.BinaryExpr(op="==", left=test, right=py.false_literal(prov), provenance=prov)
                stmts = prefix + [py.While(test=negated, body=loop_body, provenance=prov)]
                return self.after_loop(stmts, yes_edges, body, visited, in_loop)

            if yes_back and no_back:
                then = self.loop_body([], yes_back, header_id)
                orelse = self.loop_body([], no_back, header_id)
                inner = py.If(test=test, then=then, orelse=orelse, provenance=prov)
                return prefix + [py.While(test=py.true_literal(prov), body=header_stmts + [inner],
                                          provenance=prov)], visited

            header_stmts = prefix + header_stmts

        # Cabecera no condicional (o sin ramas etiquetadas): while True
        inside = [e for e in cfg.succ[header_id] if e.target in body]
        loop_body = self.loop_body(header_stmts, inside, header_id)
        return [py.While(test=py.true_literal(prov), body=loop_body, provenance=prov)], visited

    def loop_body(self, head: List[py.Statement], edges: Iterable, header_id: str) -> List[py.Statement]:
        stmts = list(head)
        loop_visited: Visited = frozenset()
        for e in edges:
            more, loop_visited = self.lower(e.target, loop_visited, header_id)
            stmts += more
        return stmts

    def after_loop(self, stmts, exits, body, visited, in_loop):
        for e in exits:
            if e.target not in body:
                more, visited = self.lower(e.target, visited, in_loop)
                stmts = stmts + more
        return stmts, visited

# =====================================================
# Punto de entrada
# =====================================================
def compile_program(nodes, edges) -> py.Program:
    """Diagrama -> Program; nunca lanza: los fallos quedan como Unsupported."""
    nodes = list(nodes)
    if not nodes:
        return py.Program(body=[py.Unsupported(reason="No nodes in diagram",
                                               provenance=py.Provenance("empty", "N/A"))])
    try:
        cfg = build_cfg(nodes, edges)
        if cfg.start_id is None:
            return py.Program(body=[py.Unsupported(reason="No Start node found",
                                                   provenance=py.Provenance("", "N/A"))])
        dom = compute_dominators(cfg)
        loops = find_natural_loops(cfg, dom)
        log.debug("entrada %s, %d nodos, %d bucles", cfg.start_id, len(cfg.nodes), len(loops))

        synth = Synthesizer(cfg, loops)
        body, _ = synth.lower(cfg.start_id)
        if not body:
            return py.Program(body=[synth.unsupported(
                cfg.start_id, "Empty diagram - only Start node with no meaningful connections")])
        return py.Program(body=body)
    except (FlowError, RecursionError) as e:
        log.error("no se pudo generar el AST: %s", e)
        return py.Program(body=[py.Unsupported(reason=f"Error building AST: {e}",
                                               provenance=py.Provenance("error", "N/A"))])


def compile(nodes, edges) -> str:
    return emit(compile_program(nodes, edges))


def generate(nodes, edges) -> Tuple[py.Program, str]:
    program = compile_program(nodes, edges)
    return program, emit(program)
