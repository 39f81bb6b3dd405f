# flowgraph.py: Nodos del diagrama (unión cerrada por tipo) y construcción del CFG
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple

from errors import FlowError
from expression import Expression
from variables import Variable

log = logging.getLogger(__name__)

# =====================================================
# Nodos
# =====================================================
@dataclass(frozen=True)
class FlowNode:
    id: str
    visual_id: Optional[str] = None
    kind: ClassVar[str] = ""

    @property
    def label(self) -> str:
        return self.visual_id or self.id

    @property
    def is_branching(self) -> bool:
        return False

@dataclass(frozen=True)
class StartNode(FlowNode):
    kind: ClassVar[str] = "Start"

@dataclass(frozen=True)
class EndNode(FlowNode):
    kind: ClassVar[str] = "End"

@dataclass(frozen=True)
class DeclareVariableNode(FlowNode):
    variable: Optional[Variable] = None
    kind: ClassVar[str] = "DeclareVariable"

@dataclass(frozen=True)
class AssignVariableNode(FlowNode):
    expression: Optional[Expression] = None
    kind: ClassVar[str] = "AssignVariable"

@dataclass(frozen=True)
class InputNode(FlowNode):
    variable: Optional[Variable] = None
    kind: ClassVar[str] = "Input"

@dataclass(frozen=True)
class OutputNode(FlowNode):
    expression: Optional[Expression] = None
    kind: ClassVar[str] = "Output"

@dataclass(frozen=True)
class ConditionalNode(FlowNode):
    expression: Optional[Expression] = None
    kind: ClassVar[str] = "Conditional"

    @property
    def is_branching(self) -> bool:
        return True

@dataclass(frozen=True)
class UnknownNode(FlowNode):
    type_name: str = ""

    @property
    def kind(self) -> str:
        return self.type_name


NODE_TYPES = {cls.kind: cls for cls in (StartNode, EndNode, DeclareVariableNode, AssignVariableNode,
                                         InputNode, OutputNode, ConditionalNode)}

# Nodos que producen a lo sumo una sentencia y siguen de largo
STRAIGHT_NODES = (DeclareVariableNode, AssignVariableNode, InputNode, OutputNode)


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    label: Optional[str] = None        # 'yes' | 'no'
    id: Optional[str] = None

    def __post_init__(self):
        if self.label is not None:
            object.__setattr__(self, "label", str(self.label).lower())


@dataclass(frozen=True)
class Graph:
    nodes: Tuple[FlowNode, ...] = ()
    edges: Tuple[Edge, ...] = ()

# =====================================================
# JSON (forma de xyflow: type / data.visualId / data.expression ...)
# =====================================================
def node_from_object(obj: Mapping[str, Any]) -> FlowNode:
    if "id" not in obj:
        raise FlowError(f"Node without id: {dict(obj)}")
    data = obj.get("data") or {}
    node_id = str(obj["id"])
    visual_id = data.get("visualId")
    kind = obj.get("type", "")
    cls = NODE_TYPES.get(kind)

    if cls is None:
        return UnknownNode(id=node_id, visual_id=visual_id, type_name=kind)
    if cls in (DeclareVariableNode, InputNode):
        variable = Variable.from_object(data["variable"]) if data.get("variable") else None
        return cls(id=node_id, visual_id=visual_id, variable=variable)
    if cls in (AssignVariableNode, OutputNode, ConditionalNode):
        expression = Expression.from_object(data["expression"]) if data.get("expression") else None
        return cls(id=node_id, visual_id=visual_id, expression=expression)
    return cls(id=node_id, visual_id=visual_id)


def node_to_object(node: FlowNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    if node.visual_id:
        data["visualId"] = node.visual_id
    if getattr(node, "variable", None) is not None:
        data["variable"] = node.variable.to_object()
    if getattr(node, "expression", None) is not None:
        data["expression"] = node.expression.to_object()
    return {"id": node.id, "type": node.kind, "data": data}


def edge_from_object(obj: Mapping[str, Any]) -> Edge:
    if "source" not in obj or "target" not in obj:
        raise FlowError(f"Edge without source or target: {dict(obj)}")
    data = obj.get("data") or {}
    return Edge(source=str(obj["source"]), target=str(obj["target"]),
                label=data.get("conditionalLabel"), id=obj.get("id"))


def edge_to_object(edge: Edge) -> Dict[str, Any]:
    obj: Dict[str, Any] = {"id": edge.id or f"e{edge.source}-{edge.target}",
                           "source": edge.source, "target": edge.target}
    if edge.label:
        obj["data"] = {"conditionalLabel": edge.label}
    return obj


def load_graph(obj: Mapping[str, Any]) -> Graph:
    if not isinstance(obj, Mapping) or "nodes" not in obj:
        raise FlowError("Diagram must be an object with 'nodes' and 'edges'")
    nodes = tuple(node_from_object(n) for n in obj.get("nodes") or ())
    edges = tuple(edge_from_object(e) for e in obj.get("edges") or ())
    return Graph(nodes=nodes, edges=edges)


def dump_graph(graph: Graph) -> Dict[str, Any]:
    return {"nodes": [node_to_object(n) for n in graph.nodes],
            "edges": [edge_to_object(e) for e in graph.edges]}

# =====================================================
# CFG
# =====================================================
@dataclass
class CFG:
    nodes: Dict[str, FlowNode] = field(default_factory=dict)
    succ: Dict[str, List[Edge]] = field(default_factory=dict)
    pred: Dict[str, List[Edge]] = field(default_factory=dict)
    start_id: Optional[str] = None

    def node(self, node_id: str) -> FlowNode:
        return self.nodes[node_id]

    def successors(self, node_id: str) -> List[str]:
        return [e.target for e in self.succ.get(node_id, ())]

    def predecessors(self, node_id: str) -> List[str]:
        return [e.source for e in self.pred.get(node_id, ())]

    def branch(self, node_id: str, label: str) -> Optional[Edge]:
        for e in self.succ.get(node_id, ()):
            if e.label == label:
                return e
        return None

    def label(self, node_id: str) -> str:
        node = self.nodes.get(node_id)
        return node.label if node is not None else node_id


def build_cfg(nodes: Iterable, edges: Iterable) -> CFG:
    """Mapas de sucesores/predecesores y el nodo de entrada (None si no hay Start)."""
    cfg = CFG()
    for n in nodes:
        if not isinstance(n, FlowNode):
            n = node_from_object(n)
        if n.id in cfg.nodes:
            log.warning("nodo %s repetido, se conserva el primero", n.id)
            continue
        cfg.nodes[n.id] = n
        cfg.succ[n.id] = []
        cfg.pred[n.id] = []

    for e in edges:
        if not isinstance(e, Edge):
            e = edge_from_object(e)
        if e.source not in cfg.nodes or e.target not in cfg.nodes:
            log.warning("arista colgante %s -> %s descartada", e.source, e.target)
            continue
        cfg.succ[e.source].append(e)
        cfg.pred[e.target].append(e)

    starts = [n.id for n in cfg.nodes.values() if isinstance(n, StartNode)]
    if starts:
        cfg.start_id = starts[0]
        if len(starts) > 1:
            log.warning("hay %d nodos Start, se usa %s", len(starts), starts[0])
    return cfg
