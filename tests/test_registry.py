import pytest

# Import the providers to ensure they are registered
from core.llm.providers import claude, dummy_provider
from core.registry import ProviderRegistry, provider_registry
from config.models import ModelConfig


def test_registry_get_component():
    """Tests that a component can be retrieved from the registry."""
    provider_class = provider_registry.get("dummy")
    assert provider_class is not None
    assert provider_class.__name__ == "DummyProvider"

    assert provider_registry.get("claude") is claude.ClaudeProvider


@pytest.mark.asyncio
async def test_registry_create_component():
    """Tests that a component can be instantiated from the registry."""
    dummy_config = ModelConfig(provider="dummy")
    provider = provider_registry.create("dummy", config=dummy_config)
    assert isinstance(provider, dummy_provider.DummyProvider)
    assert '"changes": []' in await provider.generate("test")
    assert provider.prompts == ["test"]

    provider_with_arg = provider_registry.create(
        "dummy", config=dummy_config, response="custom response"
    )
    assert await provider_with_arg.generate("test") == "custom response"


def test_registry_get_unregistered_component():
    """Tests that getting an unregistered component raises a KeyError."""
    with pytest.raises(KeyError):
        provider_registry.get("nonexistent")


def test_registry_register_duplicate_component():
    """Tests that registering a component with a duplicate name raises a ValueError."""
    with pytest.raises(ValueError):
        @provider_registry.register("dummy")
        class AnotherDummyProvider:
            pass


def test_registry_isolated_instances():
    """Tests that separate registries do not share components."""
    registry = ProviderRegistry()

    @registry.register("thing")
    class Thing:
        def __init__(self, value=1):
            self.value = value

    assert registry.create("thing", value=3).value == 3
    assert "thing" not in provider_registry


def test_registry_contains():
    """Tests the `__contains__` method."""
    assert "dummy" in provider_registry
    assert "nonexistent" not in provider_registry


def test_registry_available():
    """Tests that `available` lists registered names in order."""
    available = provider_registry.available()
    assert available == sorted(available)
    assert {"claude", "dummy"} <= set(available)
