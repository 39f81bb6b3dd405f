# test_errors.py
import errors
from errors import (ConversionError, DivisionByZeroError, EvalError, FlowError, ParseError,
                    TypeMismatchError)


def setup_function():
    errors.clear_errors()
    errors.set_source(None)


def test_hierarchy():
    assert issubclass(ParseError, FlowError)
    assert issubclass(TypeMismatchError, EvalError)
    assert issubclass(DivisionByZeroError, EvalError)
    assert issubclass(ConversionError, EvalError)


def test_error_is_recorded(capsys):
    assert not errors.errors_detected()
    errors.set_source("demo.json")
    errors.error("algo salió mal", node_id="n3", kind="Evaluación")
    assert errors.errors_detected()
    out = capsys.readouterr().out
    assert "algo salió mal" in out
    assert "demo.json: bloque n3" in out


def test_warnings_do_not_count_as_errors():
    errors.warn("cuidado")
    assert not errors.errors_detected()
    assert [m.kind for m in errors.messages()] == ["Advertencia"]


def test_report_picks_the_category():
    errors.report(ParseError("x"))
    errors.report(TypeMismatchError("y"))
    errors.report(FlowError("z"))
    assert [m.kind for m in errors.messages()] == ["Sintáctico", "Evaluación", "Estructura"]


def test_markup_in_messages_is_escaped(capsys):
    errors.error("arr[i] fuera de rango")
    assert "arr[i] fuera de rango" in capsys.readouterr().out


def test_dump_errors(capsys):
    errors.dump_errors()
    assert "No se registraron errores" in capsys.readouterr().out
    errors.error("uno")
    errors.dump_errors()
    assert "1 mensaje(s)" in capsys.readouterr().out
