"""
Function-calling helpers.

Build ``FunctionDeclaration`` and ``Tool`` values from plain Python
callables, and answer the model's function calls with their results.

Example:
    >>> from genaisdk.tools import define_tool, make_tool
    >>>
    >>> @define_tool(description="Get current weather for a location")
    ... def get_weather(city: str, country: str = "US") -> str:
    ...     return f"Weather in {city}, {country}: Sunny, 22C"
    >>>
    >>> config = GenerateContentConfig(tools=[make_tool(get_weather)])
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import types
from collections.abc import Callable, Mapping
from typing import Any, TypedDict, Union, get_args, get_origin, get_type_hints

from typing_extensions import NotRequired

from .exceptions import ValidationError
from .types import FunctionCall, FunctionDeclaration, Part, Tool

logger = logging.getLogger(__name__)


class PropertySchema(TypedDict):
    """JSON schema of one function parameter."""

    type: str
    description: NotRequired[str]
    items: NotRequired[PropertySchema]
    default: NotRequired[Any]


class ParametersSchema(TypedDict):
    """JSON schema of a function's parameter object."""

    type: str
    properties: dict[str, PropertySchema]
    required: NotRequired[list[str]]


# Python type to JSON Schema type mapping
_TYPE_MAPPING: dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    dict: "object",
}


def _property_schema(python_type: Any) -> PropertySchema:
    """Convert a Python annotation to a JSON schema property."""
    if python_type is None or python_type is inspect.Parameter.empty:
        return {"type": "string"}

    origin = get_origin(python_type)
    args = get_args(python_type)

    if origin in (list, tuple):
        schema: PropertySchema = {"type": "array"}
        if args and args[0] is not Ellipsis:
            schema["items"] = _property_schema(args[0])
        return schema
    if origin is dict:
        return {"type": "object"}
    if origin in (Union, types.UnionType):
        # Optional[X] and unions: the first non-None member decides
        non_none = [arg for arg in args if arg is not type(None)]
        if non_none:
            return _property_schema(non_none[0])

    return {"type": _TYPE_MAPPING.get(python_type, "string")}


def _parse_docstring(docstring: str | None) -> dict[str, str]:
    """Parse parameter descriptions out of a Google-style docstring."""
    if not docstring:
        return {}

    result: dict[str, str] = {}
    in_params = False
    current_param = ""
    current_desc = ""

    for line in inspect.cleandoc(docstring).splitlines():
        stripped = line.strip()

        if stripped.lower() in ("args:", "arguments:", "parameters:", "params:"):
            in_params = True
            continue
        if not in_params:
            continue

        # Any other section header ends the parameter list
        if stripped.endswith(":") and " " not in stripped and not line.startswith(" "):
            break

        if ":" in stripped and line.startswith("    ") and not line.startswith("        "):
            if current_param:
                result[current_param] = current_desc.strip()
            param_part, desc_part = stripped.split(":", 1)
            # "name (type): description"
            current_param = param_part.split("(")[0].strip()
            current_desc = desc_part.strip()
        elif current_param and stripped:
            current_desc += " " + stripped

    if current_param:
        result[current_param] = current_desc.strip()
    return result


def _summary(docstring: str | None) -> str:
    if not docstring:
        return ""
    return inspect.cleandoc(docstring).split("\n\n", 1)[0].replace("\n", " ").strip()


def infer_parameters(func: Callable[..., Any]) -> ParametersSchema:
    """Infer the parameter schema of ``func`` from its signature.

    Type hints give each property's type, the docstring's ``Args:`` section
    gives descriptions, and parameters without defaults are required.
    """
    sig = inspect.signature(func)
    try:
        hints = get_type_hints(func)
    except (NameError, TypeError):
        logger.debug(f"Could not resolve type hints of {func!r}; defaulting to strings")
        hints = {}

    param_docs = _parse_docstring(func.__doc__)
    properties: dict[str, PropertySchema] = {}
    required: list[str] = []

    for name, param in sig.parameters.items():
        if name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        prop = _property_schema(hints.get(name))
        if name in param_docs:
            prop["description"] = param_docs[name]

        if param.default is inspect.Parameter.empty:
            required.append(name)
        elif param.default is not None:
            prop["default"] = param.default

        properties[name] = prop

    schema: ParametersSchema = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def declare_function(
    func: Callable[..., Any],
    name: str | None = None,
    description: str | None = None,
    parameters: Mapping[str, Any] | None = None,
) -> FunctionDeclaration:
    """
    Describe a Python callable as a function the model may call.

    Args:
        func: The callable to describe.
        name: Function name. Defaults to ``func.__name__``.
        description: Defaults to the docstring summary.
        parameters: JSON schema of the parameters. Inferred when omitted.

    Returns:
        The function declaration.
    """
    func_name = name or getattr(func, "__name__", "")
    if not func_name or func_name == "<lambda>":
        raise ValidationError("Function declarations need a name.", field="name")

    return FunctionDeclaration(
        name=func_name,
        description=description or _summary(func.__doc__) or f"Function: {func_name}",
        parameters=dict(parameters) if parameters is not None else dict(infer_parameters(func)),
    )


def define_tool(
    name: str | None = None,
    description: str | None = None,
    parameters: Mapping[str, Any] | None = None,
) -> Callable[[Callable[..., Any]], FunctionDeclaration]:
    """
    Decorator form of ``declare_function``.

    The decorated callable stays reachable as ``declaration.handler`` so
    ``call_function`` can run it.

    Example:
        >>> @define_tool(name="search")
        ... async def search(query: str, max_results: int = 5) -> str:
        ...     '''Search the web.
        ...
        ...     Args:
        ...         query: The search query.
        ...         max_results: Maximum number of results to return.
        ...     '''
        ...     return f"Results for: {query}"
    """

    def decorator(func: Callable[..., Any]) -> FunctionDeclaration:
        declaration = declare_function(func, name, description, parameters)
        declaration.handler = func
        return declaration

    return decorator


def make_tool(*functions: FunctionDeclaration | Callable[..., Any]) -> Tool:
    """Group declarations (or callables to declare) into one ``Tool``."""
    declarations = [
        fn if isinstance(fn, FunctionDeclaration) else declare_function(fn)
        for fn in functions
    ]
    return Tool(function_declarations=declarations)


async def call_function(
    call: FunctionCall,
    functions: Mapping[str, Callable[..., Any]] | list[FunctionDeclaration | Callable[..., Any]],
) -> Part:
    """
    Run the callable the model asked for and wrap its result for the reply.

    Args:
        call: The function call from a model turn.
        functions: Callables by name, or a list of callables and
            ``define_tool`` declarations.

    Returns:
        A function-response part to send back in a user turn. Failures of
        the callable are reported to the model as an ``error`` entry.
    """
    handlers = _handlers(functions)
    handler = handlers.get(call.name)
    if handler is None:
        raise ValidationError(f"No function named {call.name!r} is registered.", field="name")

    try:
        result = handler(**call.args)
        if inspect.isawaitable(result):
            result = await result
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning(f"Function {call.name} failed: {e}")
        return Part.from_function_response(call.name, {"error": str(e)})

    if not isinstance(result, dict):
        result = {"result": result}
    return Part.from_function_response(call.name, result)


def _handlers(
    functions: Mapping[str, Callable[..., Any]] | list[FunctionDeclaration | Callable[..., Any]],
) -> dict[str, Callable[..., Any]]:
    if isinstance(functions, Mapping):
        return dict(functions)
    handlers: dict[str, Callable[..., Any]] = {}
    for fn in functions:
        if isinstance(fn, FunctionDeclaration):
            if fn.handler is not None:
                handlers[fn.name] = fn.handler
        else:
            handlers[fn.__name__] = fn
    return handlers
