"""Package names from piped JSON input."""

import json
from typing import Any, List


class BatchInputError(ValueError):
    """Piped input is not one of the accepted JSON shapes."""


def _names(items: Any, key: str) -> List[str]:
    if not isinstance(items, list):
        return []
    return [item[key] for item in items if isinstance(item, dict) and isinstance(item.get(key), str)]


def parse_batch_input(text: str) -> List[str]:
    """
    Extract package names from piped JSON.

    Accepted shapes:
        {"dependencies": {"external": [{"name": ...}, ...]}}
        {"dependencies": [{"name": ...}, ...]}
        {"pins": [{"identity": ...}, ...]}  (Package.resolved)
        {"object": {"pins": [{"package": ...}, ...]}}  (Package.resolved v1)

    Raises:
        BatchInputError: Empty input, invalid JSON or no package names
    """
    if not text.strip():
        raise BatchInputError("No input received from stdin")
    try:
        data = json.loads(text)
    except ValueError as e:
        raise BatchInputError(f"Invalid JSON input: {e}") from e
    if not isinstance(data, dict):
        raise BatchInputError("Expected a JSON object")

    dependencies = data.get("dependencies")
    if isinstance(dependencies, dict):
        packages = _names(dependencies.get("external"), "name")
    elif isinstance(dependencies, list):
        packages = _names(dependencies, "name")
    elif "pins" in data:
        packages = _names(data["pins"], "identity")
    elif isinstance(data.get("object"), dict):
        packages = _names(data["object"].get("pins"), "package")
    else:
        packages = []

    if not packages:
        raise BatchInputError("No packages found in JSON input")

    # Preserve order, drop repeats
    return list(dict.fromkeys(packages))
