# flowc.py
import argparse
import json
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from tabulate import tabulate

import errors
from analysis import compute_dominators, find_natural_loops
from astprint import ASTPrinter, CFGPrinter, print_rich_tree
from codegen import generate
from errors import FlowError, clear_errors, errors_detected, set_source
from flowgraph import build_cfg, load_graph
from lexer import print_tokens
from pyast import Unsupported
from runner import DEFAULT_MAX_STEPS, run_flow
from variables import VARIABLE_TYPES, Variable, format_value

_console = Console()

log = logging.getLogger("flowc")


# -------------------------------
# Lectura del diagrama
# -------------------------------
def read_graph(filename):
    """JSON {"nodes": [...], "edges": [...]} -> Graph; None si no se pudo leer."""
    if not os.path.exists(filename):
        errors.error(f"el archivo {filename} no existe", kind="Archivo")
        return None
    log.debug("leyendo diagrama %s", filename)
    try:
        with open(filename, encoding="utf-8") as f:
            return load_graph(json.load(f))
    except json.JSONDecodeError as e:
        errors.error(f"JSON inválido: {e}", kind="Archivo")
    except FlowError as e:
        errors.report(e)
    return None


def _unsupported_count(program):
    count = 0
    stack = list(program.body)
    while stack:
        s = stack.pop()
        if isinstance(s, Unsupported):
            count += 1
        for attr in ("body", "then", "orelse"):
            stack.extend(getattr(s, attr, None) or ())
    return count


# -------------------------------
# compile
# -------------------------------
def compile_file(filename, out=None):
    print(f" Compilando diagrama: {filename}")
    graph = read_graph(filename)
    if graph is None:
        return
    program, code = generate(graph.nodes, graph.edges)

    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(code + "\n")
        _console.print(f" [green]Guardado[/green] {out}")
    else:
        _console.rule("[bold blue]Código generado[/bold blue]")
        print(code)

    pending = _unsupported_count(program)
    if pending:
        errors.warn(f"{pending} bloque(s) no se pudieron traducir")
    else:
        print(" ✅ Sin bloques sin traducir.")


# -------------------------------
# ast (rich.Tree)
# -------------------------------
def ast_file(filename):
    print(f" AST de: {filename}")
    graph = read_graph(filename)
    if graph is None:
        return
    program, _ = generate(graph.nodes, graph.edges)
    _console.rule("[bold blue]AST (rich.Tree)[/bold blue]")
    print_rich_tree(program, _console)


# -------------------------------
# graph (Graphviz)
# -------------------------------
def graph_file(filename, cfg=False, out=None, fmt="png", dot_only=False):
    """
    Genera el .dot y, salvo que dot_only sea True, también renderiza la imagen.
    Con cfg=True dibuja el diagrama de control en lugar del AST generado.
    """
    print(f" Graphviz de: {filename}")
    graph = read_graph(filename)
    if graph is None:
        return

    suffix = "_CFG" if cfg else "_AST"
    base = out or Path(filename).with_suffix("").name + suffix

    if cfg:
        flow = build_cfg(graph.nodes, graph.edges)
        loops = find_natural_loops(flow, compute_dominators(flow))
        dot_obj = CFGPrinter.render(flow, loops)
    else:
        program, _ = generate(graph.nodes, graph.edges)
        dot_obj = ASTPrinter.render(program)

    dot_path = f"{base}.dot"
    with open(dot_path, "w", encoding="utf-8") as f:
        f.write(dot_obj.source)
    _console.print(f" [green]Guardado[/green] {dot_path}")

    if not dot_only:
        # graphviz.ExecutableNotFound hereda de RuntimeError
        try:
            out_path = dot_obj.render(base, format=fmt, cleanup=True)
        except RuntimeError as e:
            errors.error(f"No se pudo renderizar con Graphviz (¿está 'dot' en el PATH?): {e}",
                         kind="Graphviz")
            return
        _console.print(f" [green]Renderizado[/green] {out_path}")


# -------------------------------
# run (ejecución paso a paso)
# -------------------------------
def run_file(filename, inputs=(), max_steps=DEFAULT_MAX_STEPS):
    print(f" Ejecutando diagrama: {filename}")
    graph = read_graph(filename)
    if graph is None:
        return
    try:
        result = run_flow(graph.nodes, graph.edges, inputs=inputs, max_steps=max_steps)
    except FlowError as e:
        errors.report(e)
        return

    _console.rule("[bold blue]Salida[/bold blue]")
    for line in result.outputs:
        print(line)

    rows = [(b.name, b.variable.declaration(), format_value(b.value))
            for b in result.bindings.values()]
    headers = ["VARIABLE", "TIPO", "VALOR"]
    print(tabulate(rows, headers=headers, tablefmt="grid"))
    print(f" ✅ Terminó en {result.steps} paso(s).")


# -------------------------------
# tokens (expresión en texto)
# -------------------------------
def parse_var(decl, pos):
    """'x:integer' o 'arr:integer[5]' -> Variable."""
    name, _, vtype = decl.partition(":")
    vtype = vtype or "integer"
    if vtype.endswith("]") and "[" in vtype:
        subtype, _, size = vtype[:-1].partition("[")
        return Variable(id=f"v{pos}", type="array", name=name,
                        array_subtype=subtype, array_size=int(size))
    if vtype not in VARIABLE_TYPES:
        raise argparse.ArgumentTypeError(f"tipo desconocido: {vtype}")
    return Variable(id=f"v{pos}", type=vtype, name=name)


def tokens_text(text, var_decls=()):
    print(f" Elementos de: {text}")
    try:
        variables = [parse_var(s, i) for i, s in enumerate(var_decls, 1)]
        print_tokens(text, variables)
    except argparse.ArgumentTypeError as e:
        errors.error(str(e), kind="Argumento")
    except FlowError as e:
        errors.report(e)


# -------------------------------
# Procesa archivo o carpeta (no recursivo)
# -------------------------------
def process_path(command, path, **kwargs):
    def run_one(filename):
        set_source(filename)
        if command == "compile":
            compile_file(filename, out=kwargs.get("out"))
        elif command == "ast":
            ast_file(filename)
        elif command == "graph":
            graph_file(
                filename,
                cfg=kwargs.get("cfg", False),
                out=kwargs.get("gv_out"),
                fmt=kwargs.get("gv_format", "png"),
                dot_only=kwargs.get("gv_dot_only", False),
            )
        elif command == "run":
            run_file(filename, inputs=kwargs.get("inputs") or (),
                     max_steps=kwargs.get("max_steps", DEFAULT_MAX_STEPS))

    if os.path.isdir(path):
        for file in sorted(os.listdir(path)):
            if file.endswith(".json"):
                filepath = os.path.join(path, file)
                print(f"\n Encontrado archivo: {filepath}")
                run_one(filepath)
    else:
        if not path.endswith(".json"):
            print("Advertencia: la ruta no parece .json; se intentará igual.")
        run_one(path)


# -------------------------------
# CLI
# -------------------------------
def build_parser():
    parser = argparse.ArgumentParser(description="Compilador de diagramas de flujo")
    parser.add_argument("--verbose", action="store_true", help="Mensajes de depuración (logging DEBUG)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # compile
    compile_parser = subparsers.add_parser("compile", help="Genera el código estructurado del diagrama")
    compile_parser.add_argument("file", help="Archivo o carpeta .json")
    compile_parser.add_argument("-o", "--out", default=None, help="Archivo de salida (por defecto, la terminal)")

    # ast
    ast_parser = subparsers.add_parser("ast", help="Imprime el AST generado con rich.Tree")
    ast_parser.add_argument("file", help="Archivo o carpeta .json")

    # graph
    graph_parser = subparsers.add_parser("graph", help="Genera la imagen del AST (o del CFG) con Graphviz")
    graph_parser.add_argument("file", help="Archivo o carpeta .json")
    graph_parser.add_argument("--cfg", action="store_true", help="Dibujar el grafo de control en vez del AST")
    graph_parser.add_argument("--gv-out", default=None, help="Nombre base de salida (sin extensión)")
    graph_parser.add_argument("--gv-format", default="png", choices=["png", "svg", "pdf"], help="Formato de imagen")
    graph_parser.add_argument("--gv-dot-only", action="store_true", help="Solo guardar el .dot (no renderizar imagen)")

    # run
    run_parser = subparsers.add_parser("run", help="Ejecuta el diagrama paso a paso")
    run_parser.add_argument("file", help="Archivo o carpeta .json")
    run_parser.add_argument("--input", dest="inputs", action="append", default=[],
                            help="Valor para el siguiente bloque Input (repetible)")
    run_parser.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                            help="Máximo de pasos antes de abortar")

    # tokens
    tokens_parser = subparsers.add_parser("tokens", help="Muestra los elementos de una expresión en texto")
    tokens_parser.add_argument("text", help="Expresión, p. ej. \"arr[i] + 1 > 3\"")
    tokens_parser.add_argument("--var", dest="variables", action="append", default=[],
                               help="Variable declarada nombre:tipo (o nombre:subtipo[tamaño])")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    clear_errors()
    if args.command == "tokens":
        tokens_text(args.text, args.variables)
    else:
        process_path(
            args.command,
            args.file,
            out=getattr(args, "out", None),
            cfg=getattr(args, "cfg", False),
            gv_out=getattr(args, "gv_out", None),
            gv_format=getattr(args, "gv_format", "png"),
            gv_dot_only=getattr(args, "gv_dot_only", False),
            inputs=getattr(args, "inputs", None),
            max_steps=getattr(args, "max_steps", DEFAULT_MAX_STEPS),
        )

    if errors_detected():
        print(" ❌ Se detectaron errores.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
