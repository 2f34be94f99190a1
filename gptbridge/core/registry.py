"""
gptbridge Function Registry

Maps function names the AI may call to local handlers, with automatic
JSON Schema generation for the advertised function catalog.

Usage:
    registry = FunctionRegistry()

    @registry.local_action(name="sendMessage")
    async def send_message(channel: str, text: str) -> dict:
        '''Send a message to a chat channel.'''
        ...

    registry.check_catalog(advertised=["sendMessage", "createTicket"], remote=["createTicket"])
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Union, get_type_hints

from gptbridge.core.constants import GENERIC_AUTOMATION_FUNCTION
from gptbridge.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# =============================================================================
# Type to JSON Schema Mapping
# =============================================================================

TYPE_MAP = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
    type(None): "null",
}


def python_type_to_json_schema(py_type: Any) -> Dict[str, Any]:
    """Convert a Python type hint to a JSON Schema type definition.

    Args:
        py_type: A Python type or typing annotation

    Returns:
        JSON Schema type definition dict
    """
    if py_type is None or py_type is type(None):
        return {"type": "null"}

    if py_type in TYPE_MAP:
        return {"type": TYPE_MAP[py_type]}

    origin = getattr(py_type, "__origin__", None)
    args = getattr(py_type, "__args__", ())

    if origin is Union:
        non_none_types = [t for t in args if t is not type(None)]
        if len(non_none_types) == 1:
            # Optional[X] -> X
            return python_type_to_json_schema(non_none_types[0])
        return {"anyOf": [python_type_to_json_schema(t) for t in non_none_types]}

    if origin is list:
        if args:
            return {"type": "array", "items": python_type_to_json_schema(args[0])}
        return {"type": "array"}

    if origin is dict:
        return {"type": "object"}

    return {"type": "string"}


def parse_docstring(docstring: Optional[str]) -> Dict[str, Any]:
    """Parse a Google-style docstring to extract description and argument docs.

    Args:
        docstring: The function's docstring

    Returns:
        Dict with 'description' (str) and 'args' (dict of arg name -> description)
    """
    if not docstring:
        return {"description": "", "args": {}}

    description_lines = []
    args: Dict[str, str] = {}
    args_section = False
    in_section = False
    current_arg = None

    for line in inspect.cleandoc(docstring).split("\n"):
        stripped = line.strip()
        lowered = stripped.lower()

        if lowered in ("args:", "arguments:", "parameters:"):
            args_section = True
            in_section = True
            continue

        if lowered in ("returns:", "return:", "raises:", "example:", "examples:"):
            args_section = False
            in_section = True
            current_arg = None
            continue

        if args_section:
            if ":" in stripped and not line.startswith("        "):
                arg_name, arg_desc = stripped.split(":", 1)
                current_arg = arg_name.strip()
                args[current_arg] = arg_desc.strip()
            elif current_arg and stripped:
                args[current_arg] += " " + stripped
        elif stripped and not in_section:
            description_lines.append(stripped)

    return {"description": " ".join(description_lines), "args": args}


def generate_function_schema(func: Callable, name: Optional[str] = None) -> Dict[str, Any]:
    """Generate a function-calling schema from a Python function.

    Args:
        func: The function to generate schema for
        name: Optional override for function name

    Returns:
        Schema dict with 'name', 'description' and 'parameters'
    """
    func_name = name or func.__name__
    sig = inspect.signature(func)

    try:
        hints = get_type_hints(func)
    except (NameError, TypeError):
        hints = {}

    doc_info = parse_docstring(func.__doc__)

    properties = {}
    required = []

    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls") or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue

        type_schema = python_type_to_json_schema(hints.get(param_name, str))
        if param_name in doc_info["args"]:
            type_schema["description"] = doc_info["args"][param_name]

        properties[param_name] = type_schema

        if param.default is inspect.Parameter.empty:
            required.append(param_name)

    return {
        "name": func_name,
        "description": doc_info["description"],
        "parameters": {
            "type": "object",
            "properties": properties,
            "required": required
        }
    }


# =============================================================================
# Registry
# =============================================================================

@dataclass
class FunctionEntry:
    """Registered local action."""
    name: str
    func: Callable
    schema: Dict[str, Any]
    description: str
    is_async: bool = False


class FunctionRegistry:
    """Lookup table from function name to local handler.

    One registry is created per bridge and handed to the dispatcher; there is
    no module-level registry.
    """

    def __init__(self):
        self._entries: Dict[str, FunctionEntry] = {}

    def register(
        self,
        func: Callable,
        name: Optional[str] = None,
        description: Optional[str] = None
    ) -> FunctionEntry:
        """Register a callable as a local action.

        Args:
            func: Sync or async callable taking the call arguments as keywords
            name: Function name exposed to the AI (defaults to func.__name__)
            description: Optional override for the docstring description

        Returns:
            The created FunctionEntry
        """
        func_name = name or func.__name__
        if func_name == GENERIC_AUTOMATION_FUNCTION:
            raise ConfigurationError(f"'{func_name}' is reserved for the automation server")

        schema = generate_function_schema(func, func_name)
        if description:
            schema["description"] = description

        entry = FunctionEntry(
            name=func_name,
            func=func,
            schema=schema,
            description=schema["description"],
            is_async=inspect.iscoroutinefunction(func)
        )

        if func_name in self._entries:
            logger.warning(f"[REGISTRY] Local action '{func_name}' already registered, overwriting")
        self._entries[func_name] = entry
        logger.debug(f"[REGISTRY] Registered local action '{func_name}'")
        return entry

    def local_action(self, name: Optional[str] = None, description: Optional[str] = None) -> Callable:
        """Decorator form of register()."""
        def decorator(func: Callable) -> Callable:
            self.register(func, name=name, description=description)
            return func
        return decorator

    def get(self, name: str) -> Optional[FunctionEntry]:
        return self._entries.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def names(self) -> List[str]:
        return list(self._entries)

    def schemas(self) -> List[Dict[str, Any]]:
        """Get the schemas of every local action."""
        return [entry.schema for entry in self._entries.values()]

    async def execute(self, name: str, args: Dict[str, Any]) -> Any:
        """Execute a local action by name.

        Raises:
            KeyError: If the action is not registered
            Exception: Any exception from the handler
        """
        entry = self._entries.get(name)
        if not entry:
            raise KeyError(f"Local action '{name}' not found in registry")

        if entry.is_async:
            return await entry.func(**args)
        return entry.func(**args)

    def check_catalog(self, advertised: Iterable[str], remote: Iterable[str]) -> None:
        """Verify that every advertised function has somewhere to go.

        An advertised name is routable if it is the generic automation call,
        a registered local action, or a declared remote action. Every local
        action must also be advertised, otherwise the AI can never call it.

        Raises:
            ConfigurationError: Describing every inconsistency found
        """
        advertised = set(advertised)
        routable = {GENERIC_AUTOMATION_FUNCTION} | set(self._entries) | set(remote)

        problems = []
        unrouted = sorted(advertised - routable)
        if unrouted:
            problems.append(f"advertised without a handler: {', '.join(unrouted)}")
        unadvertised = sorted(set(self._entries) - advertised)
        if unadvertised:
            problems.append(f"local actions missing from the catalog: {', '.join(unadvertised)}")

        if problems:
            message = "Function catalog is inconsistent (" + "; ".join(problems) + ")"
            logger.error(f"[REGISTRY] {message}")
            raise ConfigurationError(message)

        logger.info(f"[REGISTRY] Function catalog verified ({len(advertised)} functions)")
