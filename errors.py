# errors.py: Excepciones del núcleo y reporte de errores en terminal
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional
from rich.console import Console
from rich.markup import escape

_console = Console()

# =====================================================
# Excepciones
# =====================================================
class FlowError(Exception):
    """Base de todos los errores del compilador de diagramas."""


class ParseError(FlowError):
    """Secuencia de elementos mal formada."""


class EvalError(FlowError):
    """Fallo al evaluar una expresión contra un snapshot de variables."""


class TypeMismatchError(EvalError):
    pass


class DivisionByZeroError(EvalError):
    pass


class IndexOutOfBoundsError(EvalError):
    pass


class UnassignedVariableError(EvalError):
    pass


class ConversionError(EvalError):
    pass


class ExecutionLimitError(FlowError):
    pass


# =====================================================
# Reporte (estado global muy simple)
# =====================================================
_FILENAME: Optional[str] = None
_HAD_ERRORS: bool = False

@dataclass
class Msg:
    kind: str          # "Sintáctico" | "Evaluación" | "Estructura" | ...
    text: str
    node_id: Optional[str] = None

_MSGS: List[Msg] = []


def set_source(filename: Optional[str]) -> None:
    """Archivo de diagrama que se está procesando (para mostrarlo en los mensajes)."""
    global _FILENAME
    _FILENAME = filename


def clear_errors() -> None:
    global _HAD_ERRORS, _MSGS
    _HAD_ERRORS = False
    _MSGS = []


def errors_detected() -> bool:
    return _HAD_ERRORS


def messages() -> List[Msg]:
    return list(_MSGS)


def _label_for(kind: str) -> str:
    kind_low = kind.lower()
    if "sint" in kind_low:      # Sintáctico
        return "[bold yellow]Sintáctico[/]"
    if "eval" in kind_low:      # Evaluación
        return "[bold red]Evaluación[/]"
    if "estr" in kind_low:      # Estructura del diagrama
        return "[bold magenta]Estructura[/]"
    return f"[bold]{escape(kind)}[/]"


def _where(node_id: Optional[str]) -> str:
    if _FILENAME is not None and node_id is not None:
        return f"{_FILENAME}: bloque {node_id}"
    if node_id is not None:
        return f"bloque {node_id}"
    return _FILENAME or ""


def error(text: str, node_id: Optional[str] = None, kind: str = "Error") -> None:
    """Registra e imprime un error con color y contexto."""
    global _HAD_ERRORS
    _HAD_ERRORS = True
    _MSGS.append(Msg(kind=kind, text=text, node_id=node_id))

    _console.print(f"{_label_for(kind)}: {escape(text)}")
    where = _where(node_id)
    if where:
        _console.print(f"  [dim]{escape(where)}[/]")


def warn(text: str, node_id: Optional[str] = None, kind: str = "Advertencia") -> None:
    """Advertencias con color tenue."""
    _MSGS.append(Msg(kind=kind, text=text, node_id=node_id))
    _console.print(f"[bold blue]Aviso[/]: {escape(text)}")
    where = _where(node_id)
    if where:
        _console.print(f"  [dim]{escape(where)}[/]")


def report(exc: FlowError, node_id: Optional[str] = None) -> None:
    """Traduce una excepción del núcleo a un mensaje con su categoría."""
    if isinstance(exc, ParseError):
        kind = "Sintáctico"
    elif isinstance(exc, EvalError):
        kind = "Evaluación"
    else:
        kind = "Estructura"
    error(str(exc), node_id=node_id, kind=kind)


def dump_errors() -> None:
    """Resumen final de los mensajes registrados."""
    if not _MSGS:
        _console.print("[green]No se registraron errores[/]")
        return
    _console.print(f"[bold]{len(_MSGS)} mensaje(s):[/]")
    for m in _MSGS:
        where = f" ({escape(m.node_id)})" if m.node_id else ""
        _console.print(f"  - {_label_for(m.kind)}{where}: {escape(m.text)}")
