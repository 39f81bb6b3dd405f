# variables.py: Variables declaradas y sus valores (bindings) por paso de ejecución
from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

VARIABLE_TYPES = ("integer", "string", "float", "boolean", "array")
ARRAY_SUBTYPES = ("integer", "string", "float", "boolean")

# Valor inicial por tipo escalar
DEFAULTS = {"string": "", "integer": 0, "float": 0.0, "boolean": False}


@dataclass(frozen=True)
class Variable:
    id: str
    type: str
    name: str
    node_id: str = ""
    array_subtype: Optional[str] = None
    array_size: Optional[int] = None
    # Solo arreglos: elementos que seleccionan una posición (arr[i])
    index_expression: Tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.type == "array":
            object.__setattr__(self, "array_subtype", self.array_subtype or "integer")
            size = self.array_size if self.array_size is not None and self.array_size >= 1 else 1
            object.__setattr__(self, "array_size", int(size))
            object.__setattr__(self, "index_expression", tuple(self.index_expression or ()))
        else:
            object.__setattr__(self, "array_subtype", None)
            object.__setattr__(self, "array_size", None)
            object.__setattr__(self, "index_expression", ())

    @property
    def is_array(self) -> bool:
        return self.type == "array"

    @property
    def is_indexed(self) -> bool:
        return self.is_array and len(self.index_expression) > 0

    @property
    def element_type(self) -> str:
        """Tipo del valor que denota: el subtipo si es un acceso arr[i]."""
        return self.array_subtype if self.is_indexed else self.type

    def __str__(self):
        return self.name

    def declaration(self) -> str:
        if self.is_array:
            return f"{self.array_subtype}[{self.array_size}] {self.name}"
        return f"{self.type} {self.name}"

    def same_as(self, other: "Variable") -> bool:
        return other is not None and self.id == other.id

    def update(self, **changes) -> "Variable":
        """Copia normalizada: al pasar a array conserva subtipo/tamaño válidos."""
        if changes.get("type") == "array":
            changes.setdefault("array_subtype", self.array_subtype or "integer")
            size = changes.get("array_size")
            if size is None or size < 1:
                changes["array_size"] = self.array_size if self.array_size and self.array_size >= 1 else 1
        return replace(self, **changes)

    def indexed(self, elements) -> "Variable":
        return replace(self, index_expression=tuple(elements))

    def base(self) -> "Variable":
        """La variable completa, sin índice."""
        return replace(self, index_expression=())

    def element(self, element_id: Optional[str] = None):
        from expression import ExpressionElement
        return ExpressionElement(element_id or f"var-{self.id}", "variable", self.name, variable=self)

    def to_object(self) -> Dict[str, Any]:
        obj = {"id": self.id, "type": self.type, "name": self.name, "nodeId": self.node_id}
        if self.is_array:
            obj["arraySubtype"] = self.array_subtype
            obj["arraySize"] = self.array_size
            if self.index_expression:
                obj["indexExpression"] = [e.to_object() for e in self.index_expression]
        return obj

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "Variable":
        from expression import ExpressionElement
        index = tuple(ExpressionElement.from_object(e) for e in obj.get("indexExpression") or ())
        return cls(
            id=obj["id"],
            type=obj["type"],
            name=obj["name"],
            node_id=obj.get("nodeId", ""),
            array_subtype=obj.get("arraySubtype"),
            array_size=obj.get("arraySize"),
            index_expression=index,
        )


def default_value(variable: Variable):
    if variable.is_array:
        return tuple(DEFAULTS[variable.array_subtype] for _ in range(variable.array_size))
    return DEFAULTS.get(variable.type, "")


def format_value(value) -> str:
    """Representación visible de un valor (true/false, [a, b], 2.5)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    return str(value)


@dataclass(frozen=True)
class Binding:
    variable: Variable
    value: Any = None

    def __post_init__(self):
        # Nunca se comparte una lista mutable entre snapshots
        if isinstance(self.value, list):
            object.__setattr__(self, "value", tuple(self.value))

    @property
    def id(self) -> str:
        return self.variable.id

    @property
    def name(self) -> str:
        return self.variable.name

    @property
    def type(self) -> str:
        return self.variable.type

    @classmethod
    def from_variable(cls, variable: Variable, value=None) -> "Binding":
        variable = variable.base()
        if value is None:
            value = default_value(variable)
        return cls(variable=variable, value=value)

    def with_value(self, value) -> "Binding":
        return Binding(self.variable, value)

    def text(self) -> str:
        return f"{self.name}: {format_value(self.value)}"

    def __str__(self):
        return self.text()

    def to_object(self) -> Dict[str, Any]:
        obj = self.variable.to_object()
        obj["value"] = list(self.value) if isinstance(self.value, tuple) else self.value
        return obj

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "Binding":
        return cls(variable=Variable.from_object(obj), value=obj.get("value"))


# =====================================================
# Snapshots (id -> Binding), siempre copia al escribir
# =====================================================
Bindings = Mapping[str, Binding]


def make_bindings(*items: Binding) -> Dict[str, Binding]:
    return {b.id: b for b in items}


def with_binding(bindings: Bindings, binding: Binding) -> Dict[str, Binding]:
    new = dict(bindings)
    new[binding.id] = binding
    return new


def lookup(bindings: Bindings, variable: Variable) -> Optional[Binding]:
    return bindings.get(variable.id)
