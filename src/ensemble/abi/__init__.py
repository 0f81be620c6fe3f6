"""
Contract ABIs shipped with the SDK
"""

import json
from functools import cache
from importlib.resources import files
from typing import Any, Literal

ABI_NAME = Literal["TaskRegistry", "AgentsRegistry", "ServiceRegistry"]


@cache
def load_abi(name: ABI_NAME) -> list[dict[str, Any]]:
    """
    Load one of the bundled contract ABIs by contract name
    """
    resource = files(__package__) / f"{name}.abi.json"
    if not resource.is_file():
        raise FileNotFoundError(f"No bundled ABI named {name}")
    return json.loads(resource.read_text(encoding="utf-8"))


__all__ = ["ABI_NAME", "load_abi"]
