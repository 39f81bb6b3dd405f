# test_astprint.py
# Solo se revisa el .dot generado; no se invoca el ejecutable de Graphviz.
from analysis import compute_dominators, find_natural_loops
from astprint import ASTPrinter, CFGPrinter, print_rich_tree
from codegen import compile_program
from expression import Expression, literal, operator
from flowgraph import (AssignVariableNode, ConditionalNode, Edge, EndNode, StartNode, build_cfg)
from variables import Variable

x = Variable("x", "integer", "x")

NODES = [
    StartNode(id="s"),
    ConditionalNode(id="c", visual_id="LOOP",
                    expression=Expression(left_side=[x.element()], right_side=[literal("3")], equality="<")),
    AssignVariableNode(id="a", expression=Expression(left_side=x,
                                                     right_side=[x.element(), operator("+"), literal("1")])),
    EndNode(id="e"),
]
EDGES = [Edge("s", "c"), Edge("c", "a", "yes"), Edge("a", "c"), Edge("c", "e", "no")]


def test_ast_dot_source():
    dot = ASTPrinter.render(compile_program(NODES, EDGES))
    src = dot.source
    assert src.startswith("digraph AST")
    assert "Program" in src
    assert "While" in src and "[LOOP]" in src
    assert "Id(x)" in src
    assert "label=test" in src


def test_ast_dot_marks_unsupported():
    src = ASTPrinter.render(compile_program([], [])).source
    assert "Unsupported" in src and "No nodes in diagram" in src
    assert "note" in src


def test_node_names_are_sequential():
    printer = ASTPrinter()
    assert printer.name == "n00001"
    assert printer.name == "n00002"


def test_cfg_dot_source():
    cfg = build_cfg(NODES, EDGES)
    loops = find_natural_loops(cfg, compute_dominators(cfg))
    src = CFGPrinter.render(cfg, loops).source
    assert src.startswith("digraph CFG")
    assert "doubleoctagon" in src
    assert "label=yes" in src and "label=no" in src
    # a -> c cierra el bucle
    assert "a -> c [style=dashed]" in src


def test_cfg_without_loops():
    cfg = build_cfg([StartNode(id="s"), EndNode(id="e")], [Edge("s", "e")])
    src = CFGPrinter.render(cfg).source
    assert "doubleoctagon" not in src
    assert "dashed" not in src
    assert "s -> e" in src


def test_rich_tree(capsys):
    print_rich_tree(compile_program(NODES, EDGES))
    out = capsys.readouterr().out
    assert "Program" in out and "While" in out
