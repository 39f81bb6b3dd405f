# test_parser.py
# ------------------------------------------------------------
# Parser de expresiones: precedencia, agrupación, arreglos y errores
# ------------------------------------------------------------
import pytest

from errors import ParseError
from expression import Expression, ExpressionElement, function, literal, operator
from model import BinaryOp, FunctionCall, Identifier, Literal, MemberAccess, UnaryOp
from parser import infer_literal, parse
from variables import Variable

x = Variable("var-x", "integer", "x")
arr = Variable("var-arr", "array", "arr", array_subtype="integer", array_size=5)


def test_infer_literal():
    assert infer_literal("12") == Literal(value=12, type="integer")
    assert infer_literal("1.5") == Literal(value=1.5, type="float")
    assert infer_literal("2.0") == Literal(value=2, type="integer")
    assert infer_literal("TRUE") == Literal(value=True, type="boolean")
    assert infer_literal('"hola"') == Literal(value="hola", type="string")
    assert infer_literal("'a'") == Literal(value="a", type="string")
    # sin comillas ni forma numérica: texto tal cual
    assert infer_literal("abc") == Literal(value="abc", type="string")


def test_multiplication_binds_tighter_than_addition():
    ast = parse([literal("1"), operator("+"), literal("2"), operator("*"), literal("3")])
    assert isinstance(ast, BinaryOp) and ast.op == "+"
    assert ast.left == Literal(value=1, type="integer")
    assert isinstance(ast.right, BinaryOp) and ast.right.op == "*"


def test_operators_are_left_associative():
    ast = parse([literal("8"), operator("-"), literal("3"), operator("-"), literal("1")])
    assert ast.op == "-"
    assert isinstance(ast.left, BinaryOp) and ast.left.op == "-"
    assert ast.right == Literal(value=1, type="integer")


def test_relational_is_the_lowest_level():
    # true && false == false  ->  (true && false) == false
    ast = parse([literal("true"), operator("&&"), literal("false"), operator("=="), literal("false")])
    assert ast.op == "=="
    assert ast.left.op == "&&"


def test_and_binds_tighter_than_or():
    ast = parse([literal("true"), operator("||"), literal("false"), operator("&&"), literal("false")])
    assert ast.op == "||"
    assert ast.right.op == "&&"


def test_parentheses_group():
    ast = parse([operator("("), literal("1"), operator("+"), literal("2"), operator(")"),
                 operator("*"), literal("3")])
    assert ast.op == "*"
    assert ast.left.op == "+"


def test_unary_operators():
    ast = parse([operator("-"), operator("-"), x.element()])
    assert isinstance(ast, UnaryOp) and ast.op == "-"
    assert isinstance(ast.operand, UnaryOp)
    assert ast.operand.operand == Identifier(name="x", variable=x)

    ast = parse([operator("!"), literal("true")])
    assert ast == UnaryOp(op="!", operand=Literal(value=True, type="boolean"))


def test_subscript_builds_member_access():
    ast = parse([arr.element(), operator("["), x.element(), operator("+"), literal("1"), operator("]")])
    assert isinstance(ast, MemberAccess)
    assert ast.object.name == "arr"
    assert ast.object.variable == arr
    assert ast.index.op == "+"


def test_function_argument_is_parsed():
    ast = parse([function("integer", [literal("2"), operator("*"), x.element()])])
    assert isinstance(ast, FunctionCall) and ast.name == "integer"
    assert ast.argument.op == "*"


def test_empty_input():
    with pytest.raises(ParseError, match="Unexpected end of expression"):
        parse([])


def test_dangling_operator():
    with pytest.raises(ParseError, match="Unexpected end of expression"):
        parse([literal("1"), operator("+")])


def test_two_operands_in_a_row():
    with pytest.raises(ParseError, match="Unexpected token '2'"):
        parse([literal("1"), literal("2")])


def test_unbalanced_delimiters():
    with pytest.raises(ParseError, match=r"Expected '\)' after expression"):
        parse([operator("("), literal("1")])
    with pytest.raises(ParseError, match=r"Expected '\]' after index expression"):
        parse([arr.element(), operator("["), literal("1")])
    with pytest.raises(ParseError, match=r"Expected '\)' but found '\]'"):
        parse([operator("("), literal("1"), operator("]")])
    with pytest.raises(ParseError, match=r"Unexpected token '\)'"):
        parse([literal("1"), operator(")")])


def test_indexing_a_scalar():
    with pytest.raises(ParseError, match='Variable "x" is not an array and cannot be indexed.'):
        parse([x.element(), operator("["), literal("0"), operator("]")])


def test_unknown_operator():
    with pytest.raises(ParseError, match="Unknown operator '\\^'"):
        parse([literal("1"), operator("^"), literal("2")])


def test_variable_element_without_variable():
    with pytest.raises(ParseError, match="has no variable attached"):
        parse([ExpressionElement("v1", "variable", "y")])


def test_condition_elements_parse_as_one_expression():
    cond = Expression(left_side=(x.element(),), right_side=(literal("0"),), equality=">")
    ast = parse(cond.condition_elements())
    assert ast == BinaryOp(op=">", left=Identifier(name="x", variable=x),
                           right=Literal(value=0, type="integer"))
