from typing import Any, Callable, Dict, List, Type, TypeVar

T = TypeVar("T")


class ProviderRegistry:
    """
    Maps the names accepted in `model.provider` to LLM provider classes.

    Provider modules register their class on import with the `register`
    decorator; `core.llm.router` instantiates them from configuration.
    """

    def __init__(self):
        self._providers: Dict[str, Type[Any]] = {}

    def register(self, name: str) -> Callable[[Type[T]], Type[T]]:
        """
        Class decorator registering a provider under `name`.

        Raises:
            ValueError: If another provider already uses the name.
        """
        def decorator(cls: Type[T]) -> Type[T]:
            if name in self._providers:
                raise ValueError(f"Provider '{name}' is already registered.")
            self._providers[name] = cls
            return cls
        return decorator

    def get(self, name: str) -> Type[Any]:
        """
        Raises:
            KeyError: If no provider is registered under the name.
        """
        if name not in self._providers:
            raise KeyError(f"Provider '{name}' is not registered.")
        return self._providers[name]

    def create(self, name: str, *args: Any, **kwargs: Any) -> Any:
        return self.get(name)(*args, **kwargs)

    def available(self) -> List[str]:
        return sorted(self._providers)

    def __contains__(self, name: str) -> bool:
        return name in self._providers


provider_registry = ProviderRegistry()
