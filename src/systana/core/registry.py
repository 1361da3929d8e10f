"""Name registries for systematics, variables and cuts."""

from __future__ import annotations

from importlib.metadata import EntryPoint, entry_points
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from systana.core.var import Cut, Var
    from systana.syst.base import Systematic


class RegistryError(KeyError):
    """Raised when a named definition cannot be resolved."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "registry error"


class Registry:
    """Case-sensitive name -> object table, with lazy entry-point discovery."""

    def __init__(self, kind: str, group: str) -> None:
        self.kind = kind
        self.group = group
        self._items: dict[str, Any] = {}
        self._entrypoints_loaded = False

    def register(self, name: str, obj: Any, replace: bool = False) -> None:
        key = name.strip()
        if not key:
            raise RegistryError(f"{self.kind} name cannot be empty")
        if key in self._items and self._items[key] is not obj and not replace:
            raise RegistryError(f"{self.kind} '{key}' is already registered")
        self._items[key] = obj

    def get(self, name: str) -> Any:
        key = name.strip()
        if key in self._items:
            return self._items[key]
        self._load_entrypoints()
        if key not in self._items:
            available = ", ".join(sorted(self._items)) or "none"
            raise RegistryError(f"Unknown {self.kind} '{name}'. Available: {available}")
        return self._items[key]

    def names(self) -> list[str]:
        self._load_entrypoints()
        return sorted(self._items)

    def items(self) -> list[tuple[str, Any]]:
        self._load_entrypoints()
        return sorted(self._items.items())

    def clear(self) -> None:
        self._items.clear()
        self._entrypoints_loaded = False

    def _load_entrypoints(self) -> None:
        if self._entrypoints_loaded:
            return
        self._entrypoints_loaded = True
        for ep in entry_points(group=self.group):
            self._load_entrypoint(ep)

    def _load_entrypoint(self, ep: EntryPoint) -> None:
        obj = ep.load()
        inst = obj() if isinstance(obj, type) else obj
        self.register(getattr(inst, "name", ep.name), inst, replace=True)


SYSTEMATICS = Registry("systematic", "systana.systematics")
VARIABLES = Registry("variable", "systana.vars")
CUTS = Registry("cut", "systana.cuts")


def register_systematic(syst: "Systematic", replace: bool = False) -> None:
    SYSTEMATICS.register(syst.name, syst, replace=replace)


def get_systematic(name: str) -> "Systematic":
    return SYSTEMATICS.get(name)


def register_var(name: str, var: "Var", replace: bool = False) -> None:
    VARIABLES.register(name, var, replace=replace)


def get_var(name: str) -> "Var":
    return VARIABLES.get(name)


def register_cut(name: str, cut: "Cut", replace: bool = False) -> None:
    CUTS.register(name, cut, replace=replace)


def get_cut(name: str) -> "Cut":
    return CUTS.get(name)


def clear_registry() -> None:
    for registry in (SYSTEMATICS, VARIABLES, CUTS):
        registry.clear()

