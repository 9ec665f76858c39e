from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Type
from dataclasses import dataclass
from pydantic import BaseModel


Handler = Callable[[Any, BaseModel], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class MethodSpec:
    """A JSON-RPC method and the metadata the dispatcher acts on.

    ``cacheable`` results go to the in-process cache; ``tier2_eligible``
    results are also written to the shared cache. Methods with side effects
    (generation, clearing context) must not be cacheable.
    """

    name: str
    handler: Handler
    params_model: Type[BaseModel]
    cacheable: bool = True
    tier2_eligible: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        if self.tier2_eligible and not self.cacheable:
            raise ValueError(f"Method '{self.name}' cannot be tier-2 eligible without being cacheable")


class MethodRegistry:
    def __init__(self) -> None:
        self._methods: Dict[str, MethodSpec] = {}

    def register(self, spec: MethodSpec) -> None:
        if spec.name in self._methods:
            raise ValueError(f"Method '{spec.name}' is already registered")
        self._methods[spec.name] = spec

    def get(self, name: str) -> Optional[MethodSpec]:
        return self._methods.get(name)

    def names(self) -> List[str]:
        return sorted(self._methods)

    def __contains__(self, name: object) -> bool:
        return name in self._methods

    def __len__(self) -> int:
        return len(self._methods)

    def __iter__(self) -> Iterator[MethodSpec]:
        return iter(self._methods.values())

    def list_specs(self) -> List[Dict[str, Any]]:
        """Describe every method with its parameter schema derived from the model."""
        specs: List[Dict[str, Any]] = []
        for spec in self._methods.values():
            schema = spec.params_model.model_json_schema()
            specs.append(
                {
                    "name": spec.name,
                    "description": spec.description,
                    "params": {
                        "type": "object",
                        "properties": schema.get("properties", {}) or {},
                        "required": schema.get("required", []) or [],
                    },
                    "cacheable": spec.cacheable,
                    "tier2_eligible": spec.tier2_eligible,
                }
            )
        return specs
