# analysis.py: Dominadores, aristas de retroceso y bucles naturales sobre el CFG
import logging
from typing import Dict, FrozenSet, List, Set

from flowgraph import CFG, Edge

log = logging.getLogger(__name__)


def reachable(cfg: CFG) -> Set[str]:
    """Nodos alcanzables desde la entrada."""
    if cfg.start_id is None:
        return set()
    seen = {cfg.start_id}
    stack = [cfg.start_id]
    while stack:
        n = stack.pop()
        for t in cfg.successors(n):
            if t not in seen:
                seen.add(t)
                stack.append(t)
    return seen


def compute_dominators(cfg: CFG) -> Dict[str, FrozenSet[str]]:
    """Punto fijo iterativo: dom(n) = {n} ∪ ⋂ dom(p) para p predecesor de n.

    Los nodos sin predecesores (distintos de la entrada) conservan el
    conjunto inicial con todos los nodos.
    """
    ids = list(cfg.nodes)
    everything = frozenset(ids)
    dom = {i: everything for i in ids}
    if cfg.start_id is None:
        return dom
    dom[cfg.start_id] = frozenset([cfg.start_id])

    changed = True
    rounds = 0
    while changed:
        changed = False
        rounds += 1
        for i in ids:
            if i == cfg.start_id:
                continue
            preds = cfg.predecessors(i)
            if not preds:
                continue
            new = frozenset.intersection(*(dom[p] for p in preds)) | {i}
            if new != dom[i]:
                dom[i] = new
                changed = True
    log.debug("dominadores estables tras %d vueltas", rounds)
    return dom


def dominates(dom: Dict[str, FrozenSet[str]], a: str, b: str) -> bool:
    return a in dom.get(b, ())


def find_back_edges(cfg: CFG, dom: Dict[str, FrozenSet[str]]) -> List[Edge]:
    """Aristas n -> h donde h domina a n (solo entre nodos alcanzables)."""
    live = reachable(cfg)
    back = []
    for header, preds in cfg.pred.items():
        for e in preds:
            if e.source in live and header in dom.get(e.source, ()):
                back.append(e)
    return back


def natural_loop(cfg: CFG, edge: Edge, live: Set[str]) -> Set[str]:
    """Cuerpo del bucle de una arista de retroceso: recorrido hacia atrás hasta la cabecera."""
    header, node = edge.target, edge.source
    body = {header, node}
    # el recorrido se detiene en la cabecera; un auto-ciclo no sube más
    stack = [node] if node != header else []
    while stack:
        n = stack.pop()
        for p in cfg.predecessors(n):
            if p not in body and p in live:
                body.add(p)
                stack.append(p)
    return body


def find_natural_loops(cfg: CFG, dom: Dict[str, FrozenSet[str]]) -> Dict[str, FrozenSet[str]]:
    """cabecera -> cuerpo; varias aristas hacia la misma cabecera se unen en una región."""
    live = reachable(cfg)
    loops: Dict[str, Set[str]] = {}
    for e in find_back_edges(cfg, dom):
        body = natural_loop(cfg, e, live)
        if e.target in loops:
            loops[e.target] |= body
        else:
            loops[e.target] = body
    for header, body in loops.items():
        log.debug("bucle con cabecera %s: %s", header, sorted(body))
    return {h: frozenset(b) for h, b in loops.items()}
