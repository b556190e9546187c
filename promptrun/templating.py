"""
Prompt template variables.

Templates reference variables as ``{{name}}`` or, for nested inputs,
``{{user.email}}``. Unknown variables are left in place.
"""
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_VARIABLE_RE = re.compile(r"\{\{([^}]+)\}\}")
_SIMPLE_VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}")

_MISSING = object()


def extract_prompt_variables(prompt: str) -> List[str]:
    """Unique variable names in order of first appearance."""
    variables: List[str] = []
    for name in _VARIABLE_RE.findall(prompt):
        if name not in variables:
            variables.append(name)
    return variables


def parse_prompt_variables(prompt: str, variables: Mapping[str, Any]) -> str:
    """Replace ``{{word}}`` placeholders found in ``variables``."""
    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name in variables:
            return _format(variables[name])
        return match.group(0)

    return _SIMPLE_VARIABLE_RE.sub(replace, prompt)


def validate_inputs(inputs: Dict[str, Any], schema: Type[M]) -> M:
    """
    Validate template inputs against a pydantic model.

    Raises:
        pydantic.ValidationError: If the inputs do not match the schema.
    """
    return schema.model_validate(inputs)


def process_prompt_with_inputs(
    prompt: str,
    inputs: Mapping[str, Any],
    variables: Optional[List[str]] = None,
) -> str:
    """
    Substitute variables, resolving dotted names through nested inputs.

    Args:
        prompt: Template text.
        inputs: Input values (plain dicts or pydantic models).
        variables: Names to substitute. Defaults to every variable in ``prompt``.

    Returns:
        The processed prompt. Variables without a value are kept as-is and
        reported with a warning.
    """
    if variables is None:
        variables = extract_prompt_variables(prompt)

    processed = prompt
    missing: List[str] = []
    for name in variables:
        value = _get_nested_value(inputs, name)
        if value is _MISSING:
            missing.append(name)
            continue
        processed = processed.replace("{{" + name + "}}", _format(value))

    if missing:
        logger.warning(
            f"The following variables are defined in the prompt but not provided in inputs: "
            f"{', '.join(missing)}. Continuing with unprocessed variables."
        )
    return processed


def _get_nested_value(obj: Any, path: str) -> Any:
    current = obj
    for key in path.split("."):
        if isinstance(current, BaseModel):
            current = getattr(current, key, _MISSING)
        elif isinstance(current, Mapping):
            current = current.get(key, _MISSING)
        elif isinstance(current, (list, tuple)) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return _MISSING
        if current is _MISSING:
            return _MISSING
    return current


def _format(value: Any) -> str:
    # lowercase booleans, as the playground renders them
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = [
    "extract_prompt_variables",
    "parse_prompt_variables",
    "validate_inputs",
    "process_prompt_with_inputs",
]
