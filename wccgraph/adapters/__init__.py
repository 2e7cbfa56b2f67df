from importlib import import_module, util

__all__ = ["available_adapters", "load_adapter"]

# name -> (pip_import_name, submodule)
_ADAPTERS = {
    "networkx": ("networkx", ".networkx"),
}


def _is_installed(modname: str) -> bool:
    return util.find_spec(modname) is not None


def available_adapters() -> dict:
    return {name: _is_installed(mod) for name, (mod, _) in _ADAPTERS.items()}


def load_adapter(name: str):
    """Import and return the adapter module registered under ``name``."""
    if name not in _ADAPTERS:
        raise ValueError(f"Unknown adapter '{name}'")
    modname, submod = _ADAPTERS[name]
    if not _is_installed(modname):
        raise ModuleNotFoundError(
            f"Optional adapter '{name}' is not installed. "
            f"Install with `pip install wccgraph[{name}]`."
        )
    return import_module(__name__ + submod)
