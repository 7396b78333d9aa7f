"""
@tool decorator: build ToolDefinition instances from typed async functions.

Inspects the function signature and type hints to build the JSON Schema the
model sees, then wraps the function into the executor signature expected by
ToolDefinition (``async def executor(args: dict, context: ToolContext)``).

Usage::

    from typing import Annotated, Literal
    from kakebo.tool_decorator import tool
    from kakebo.models import ToolContext

    @tool(name="getBudgetStatus")
    async def get_budget_status(
        month: Annotated[Optional[str], "Month in YYYY-MM format"] = None,
        category: Annotated[Optional[Literal["survival", "optional"]], "Category"] = None,
        *,
        context: ToolContext,
    ) -> dict:
        \"\"\"Check budget usage for the current month.\"\"\"
        ...

    @tool(name="setBudget", requires_confirmation=True, confirmation_template=_preview)
    async def set_budget(...): ...

``Annotated`` metadata may carry a description string and/or a dict of extra
JSON Schema keywords (``{"minimum": 0}``) merged into the property schema.
"""

from __future__ import annotations

import inspect
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from .errors import ToolArgumentError
from .models import ToolContext, ToolDefinition

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_NoneType = type(None)


def _is_optional(annotation: Any) -> bool:
    """Return True if *annotation* is ``Optional[X]`` (i.e. ``Union[X, None]``)."""
    if get_origin(annotation) is Union:
        return _NoneType in get_args(annotation)
    return False


def _unwrap_optional(annotation: Any) -> Any:
    """Given ``Optional[X]``, return ``X``."""
    non_none = [a for a in get_args(annotation) if a is not _NoneType]
    return non_none[0] if len(non_none) == 1 else annotation


def _split_annotated(annotation: Any):
    """Return ``(base_type, description, schema_extras)`` for *annotation*."""
    if get_origin(annotation) is not Annotated:
        return annotation, None, {}
    base, *metadata = get_args(annotation)
    description = None
    extras: Dict[str, Any] = {}
    for item in metadata:
        if isinstance(item, str) and description is None:
            description = item
        elif isinstance(item, dict):
            extras.update(item)
    return base, description, extras


def _python_type_to_json_schema(annotation: Any) -> Dict[str, Any]:
    """Map a Python type annotation to a JSON Schema dict."""
    base, _, extras = _split_annotated(annotation)

    if _is_optional(base):
        schema = _python_type_to_json_schema(_unwrap_optional(base))
        schema.update(extras)
        return schema

    origin = get_origin(base)
    schema: Dict[str, Any]

    if origin is Literal:
        values = list(get_args(base))
        kind = "string"
        if all(isinstance(v, bool) for v in values):
            kind = "boolean"
        elif all(isinstance(v, int) for v in values):
            kind = "integer"
        schema = {"type": kind, "enum": values}
    elif base is str:
        schema = {"type": "string"}
    elif base is bool:
        schema = {"type": "boolean"}
    elif base is int:
        schema = {"type": "integer"}
    elif base is float:
        schema = {"type": "number"}
    elif base is list or origin is list:
        schema = {"type": "array"}
        args = get_args(base)
        if args:
            schema["items"] = _python_type_to_json_schema(args[0])
    elif base is dict or origin is dict:
        schema = {"type": "object"}
    else:
        schema = {"type": "string"}

    schema.update(extras)
    return schema


def _is_required(param: inspect.Parameter, annotation: Any) -> bool:
    """Required: no default AND not Optional."""
    has_default = param.default is not inspect.Parameter.empty
    return not has_default and not _is_optional(_split_annotated(annotation)[0])


def _build_json_schema(func: Callable) -> Dict[str, Any]:
    """Build a full JSON Schema ``{"type": "object", ...}`` from *func*'s signature."""
    sig = inspect.signature(func)
    hints = get_type_hints(func, include_extras=True)

    properties: Dict[str, Any] = {}
    required: List[str] = []

    for name, param in sig.parameters.items():
        if name == "context":
            continue
        if param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue

        annotation = hints.get(name, str)
        prop_schema = _python_type_to_json_schema(annotation)

        _, desc, _ = _split_annotated(annotation)
        if desc:
            prop_schema["description"] = desc

        properties[name] = prop_schema

        if _is_required(param, annotation):
            required.append(name)

    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _build_wrapper(func: Callable) -> Callable:
    """Create an executor wrapper with the ToolDefinition-expected signature.

    Unknown argument names are dropped; missing optional ones fall back to
    the function defaults. A missing or null required argument is rejected
    before the function runs.
    """
    sig = inspect.signature(func)
    hints = get_type_hints(func, include_extras=True)
    accepted = [
        name
        for name, param in sig.parameters.items()
        if name != "context"
        and param.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    required = [
        name for name in accepted
        if _is_required(sig.parameters[name], hints.get(name, str))
    ]

    async def wrapper(args: Dict[str, Any], context: ToolContext) -> Any:
        for name in required:
            if args.get(name) is None:
                raise ToolArgumentError(f"Falta el campo '{name}'")
        kwargs = {name: args[name] for name in accepted if name in args}
        return await func(**kwargs, context=context)

    wrapper.__name__ = func.__name__
    wrapper.__wrapped__ = func
    return wrapper


# ---------------------------------------------------------------------------
# Public decorator
# ---------------------------------------------------------------------------


def tool(
    func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    requires_confirmation: bool = False,
    confirmation_template: Optional[Callable[[Dict[str, Any]], str]] = None,
    risk_level: Optional[str] = None,
    default_arguments: Optional[Dict[str, Any]] = None,
) -> Any:
    """Decorator that converts a typed async function into a :class:`ToolDefinition`.

    Supports both bare ``@tool`` and parameterised ``@tool(name=...)`` usage.
    The decorated name is replaced by a ``ToolDefinition`` instance.
    """

    def _make_tool(fn: Callable) -> ToolDefinition:
        tool_name = name or fn.__name__
        doc = inspect.getdoc(fn) or ""
        description = doc.split("\n\n")[0].replace("\n", " ").strip() if doc else tool_name

        return ToolDefinition(
            name=tool_name,
            description=description,
            parameters=_build_json_schema(fn),
            executor=_build_wrapper(fn),
            requires_confirmation=requires_confirmation,
            confirmation_template=confirmation_template,
            risk_level=risk_level or ("write" if requires_confirmation else "read"),
            default_arguments=dict(default_arguments or {}),
        )

    if func is not None:
        return _make_tool(func)

    return _make_tool
