'''
Ejecutor paso a paso del diagrama.

Cada paso produce un snapshot nuevo de variables; ninguno se modifica
después de entregado.
'''
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional

from errors import FlowError, ConversionError, ExecutionLimitError
from evaluator import parse_number, to_integer
from expression import Expression, assign, evaluate_condition, evaluate_value, literal
from flowgraph import (StartNode, EndNode, DeclareVariableNode, AssignVariableNode, InputNode,
                       OutputNode, ConditionalNode, build_cfg)
from variables import Binding, Bindings, format_value, with_binding

log = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 1000


@dataclass(frozen=True)
class Step:
    node_id: str
    kind: str
    bindings: Mapping[str, Binding]
    output: Optional[str] = None


@dataclass
class RunResult:
    outputs: List[str] = field(default_factory=list)
    bindings: Dict[str, Binding] = field(default_factory=dict)
    steps: int = 0


def convert_input(text: str, vtype: str):
    """Texto leído del teclado -> valor del tipo de la variable."""
    if vtype == "string":
        return text
    if vtype == "boolean":
        low = text.strip().lower()
        if low in ("true", "false"):
            return low == "true"
        num = parse_number(text)
        if num is None:
            raise ConversionError(f"Cannot convert '{text}' to boolean.")
        return num != 0
    num = parse_number(text)
    if num is None:
        raise ConversionError(f"Cannot convert '{text}' to {vtype}.")
    if vtype == "integer":
        return to_integer(num, text)
    return float(num)


def _as_literal(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return repr(value)


def iter_steps(nodes, edges, inputs=(), max_steps: int = DEFAULT_MAX_STEPS) -> Iterator[Step]:
    cfg = build_cfg(nodes, edges)
    if cfg.start_id is None:
        raise FlowError("No Start node found")

    pending = list(inputs)
    bindings: Bindings = {}
    current = cfg.start_id
    count = 0

    while current is not None:
        count += 1
        if count > max_steps:
            raise ExecutionLimitError("Execution exceeded maximum steps (possible infinite loop).")
        node = cfg.node(current)
        output = None
        nxt = None

        if isinstance(node, DeclareVariableNode):
            if node.variable is not None:
                bindings = with_binding(bindings, Binding.from_variable(node.variable))
        elif isinstance(node, AssignVariableNode):
            if node.expression is not None and node.expression.is_assignment:
                bindings = with_binding(bindings, assign(node.expression, bindings))
        elif isinstance(node, InputNode):
            var = node.variable
            if var is not None:
                if not pending:
                    raise FlowError(f'No input available for "{var.name}"')
                value = convert_input(pending.pop(0), var.element_type)
                read = Expression(left_side=var, right_side=(literal(_as_literal(value), "input"),))
                bindings = with_binding(bindings, assign(read, bindings))
        elif isinstance(node, OutputNode):
            expr = node.expression
            if expr is None or not expr.right_side:
                output = ""
            else:
                output = format_value(evaluate_value(Expression(right_side=expr.right_side), None, bindings))
        elif isinstance(node, ConditionalNode):
            if node.expression is None:
                raise FlowError(f"Conditional block {node.label} has no expression")
            result = evaluate_condition(node.expression, bindings)
            edge = cfg.branch(current, "yes" if result else "no")
            nxt = edge.target if edge is not None else None
        elif not isinstance(node, (StartNode, EndNode)):
            raise FlowError(f"Node '{node.kind}' not supported.")

        yield Step(node_id=current, kind=node.kind, bindings=bindings, output=output)

        if isinstance(node, EndNode):
            break
        if not isinstance(node, ConditionalNode):
            succs = cfg.successors(current)
            nxt = succs[0] if succs else None
        current = nxt

    log.debug("ejecución terminada tras %d pasos", count)


def run_flow(nodes, edges, inputs=(), max_steps: int = DEFAULT_MAX_STEPS) -> RunResult:
    result = RunResult()
    for step in iter_steps(nodes, edges, inputs, max_steps):
        result.steps += 1
        result.bindings = dict(step.bindings)
        if step.output is not None:
            result.outputs.append(step.output)
    return result
