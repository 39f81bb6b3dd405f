# test_runner.py
import pytest

from errors import ConversionError, DivisionByZeroError, ExecutionLimitError, FlowError
from expression import Expression, literal, operator
from flowgraph import (AssignVariableNode, ConditionalNode, DeclareVariableNode, Edge, EndNode,
                       InputNode, OutputNode, StartNode, UnknownNode)
from runner import convert_input, iter_steps, run_flow
from variables import Variable

arr = Variable("arr", "array", "arr", array_subtype="integer", array_size=5)
i = Variable("i", "integer", "i")
x = Variable("x", "integer", "x")


def chain(*ids):
    return [Edge(a, b) for a, b in zip(ids, ids[1:])]


def test_array_element_assignment():
    nodes = [
        StartNode(id="s"),
        DeclareVariableNode(id="d1", variable=arr),
        DeclareVariableNode(id="d2", variable=i),
        AssignVariableNode(id="a1", expression=Expression(left_side=i, right_side=[literal("1")])),
        AssignVariableNode(id="a2", expression=Expression(left_side=arr.indexed([i.element()]),
                                                          right_side=[literal("5")])),
        EndNode(id="e"),
    ]
    steps = list(iter_steps(nodes, chain("s", "d1", "d2", "a1", "a2", "e")))
    assert [st.node_id for st in steps] == ["s", "d1", "d2", "a1", "a2", "e"]
    assert steps[1].bindings["arr"].value == (0, 0, 0, 0, 0)
    assert steps[4].bindings["arr"].value == (0, 5, 0, 0, 0)
    # los pasos anteriores conservan su propio snapshot
    assert steps[3].bindings["arr"].value == (0, 0, 0, 0, 0)


def counting_loop(limit="3"):
    nodes = [
        StartNode(id="s"),
        DeclareVariableNode(id="d", variable=x),
        ConditionalNode(id="c", expression=Expression(left_side=[x.element()], right_side=[literal(limit)],
                                                      equality="<")),
        AssignVariableNode(id="a", expression=Expression(left_side=x,
                                                         right_side=[x.element(), operator("+"), literal("1")])),
        OutputNode(id="o", expression=Expression(right_side=[x.element()])),
        EndNode(id="e"),
    ]
    edges = chain("s", "d", "c") + [Edge("c", "a", "yes"), Edge("a", "c"), Edge("c", "o", "no"), Edge("o", "e")]
    return nodes, edges


def test_loop_runs_until_condition_fails():
    result = run_flow(*counting_loop())
    assert result.outputs == ["3"]
    assert result.bindings["x"].value == 3
    # s, d, (c, a) x3, c, o, e
    assert result.steps == 11


def test_step_limit():
    nodes, edges = counting_loop("1000")
    with pytest.raises(ExecutionLimitError, match="possible infinite loop"):
        run_flow(nodes, edges, max_steps=20)


def test_input_is_converted_to_the_variable_type():
    f = Variable("f", "float", "f")
    nodes = [
        StartNode(id="s"),
        DeclareVariableNode(id="d", variable=x),
        InputNode(id="in1", variable=x),
        InputNode(id="in2", variable=f),
        OutputNode(id="o", expression=Expression(right_side=[x.element(), operator("*"), f.element()])),
        EndNode(id="e"),
    ]
    result = run_flow(nodes, chain("s", "d", "in1", "in2", "o", "e"), inputs=["21.7", "2"])
    assert result.bindings["x"].value == 21
    assert result.bindings["f"].value == 2.0
    assert result.outputs == ["42"]


def test_input_into_array_element():
    nodes = [
        StartNode(id="s"),
        InputNode(id="in", variable=arr.indexed([literal("4")])),
        EndNode(id="e"),
    ]
    result = run_flow(nodes, chain("s", "in", "e"), inputs=["9"])
    assert result.bindings["arr"].value == (0, 0, 0, 0, 9)


def test_missing_input():
    nodes = [StartNode(id="s"), InputNode(id="in", variable=x), EndNode(id="e")]
    with pytest.raises(FlowError, match='No input available for "x"'):
        run_flow(nodes, chain("s", "in", "e"))


def test_convert_input():
    assert convert_input("hola", "string") == "hola"
    assert convert_input("3.9", "integer") == 3
    assert convert_input("3", "float") == 3.0
    assert convert_input("TRUE", "boolean") is True
    assert convert_input("0", "boolean") is False
    with pytest.raises(ConversionError):
        convert_input("quizás", "boolean")
    with pytest.raises(ConversionError):
        convert_input("abc", "integer")
    with pytest.raises(ConversionError, match="Cannot convert '1e400' to integer."):
        convert_input("1e400", "integer")


def test_output_formats():
    flag = Variable("flag", "boolean", "flag")
    nodes = [
        StartNode(id="s"),
        DeclareVariableNode(id="d1", variable=arr),
        DeclareVariableNode(id="d2", variable=flag),
        OutputNode(id="o1", expression=Expression(right_side=[arr.element()])),
        OutputNode(id="o2", expression=Expression(right_side=[flag.element()])),
        OutputNode(id="o3", expression=Expression(right_side=[literal("7"), operator("/"), literal("2")])),
        OutputNode(id="o4", expression=Expression()),
        EndNode(id="e"),
    ]
    result = run_flow(nodes, chain("s", "d1", "d2", "o1", "o2", "o3", "o4", "e"))
    assert result.outputs == ["[0, 0, 0, 0, 0]", "false", "3.5", ""]


def test_evaluation_errors_propagate():
    nodes = [
        StartNode(id="s"),
        OutputNode(id="o", expression=Expression(right_side=[literal("5"), operator("/"), literal("0")])),
        EndNode(id="e"),
    ]
    with pytest.raises(DivisionByZeroError):
        run_flow(nodes, chain("s", "o", "e"))


def test_missing_successor_stops():
    result = run_flow([StartNode(id="s"), DeclareVariableNode(id="d", variable=x)], chain("s", "d"))
    assert result.steps == 2
    assert result.bindings["x"].value == 0


def test_unknown_node_fails():
    with pytest.raises(FlowError, match="Node 'Loop' not supported."):
        run_flow([StartNode(id="s"), UnknownNode(id="u", type_name="Loop")], chain("s", "u"))


def test_no_start():
    with pytest.raises(FlowError, match="No Start node found"):
        run_flow([EndNode(id="e")], [])


def test_runs_from_json_objects():
    nodes = [{"id": "s", "type": "Start"},
             {"id": "o", "type": "Output",
              "data": {"expression": Expression(right_side=[literal('"hola"')]).to_object()}},
             {"id": "e", "type": "End"}]
    edges = [{"source": "s", "target": "o"}, {"source": "o", "target": "e"}]
    assert run_flow(nodes, edges).outputs == ["hola"]
