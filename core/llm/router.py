from config.models import ModelConfig
from core.contracts.provider import LLMProvider
from core.registry import provider_registry
from utils.errors import ProviderError

# Importing the providers registers them.
import core.llm.providers  # noqa: F401


def get_provider(config: ModelConfig) -> LLMProvider:
    """
    Instantiates the provider named by `config.provider` with the model config.

    Raises:
        ProviderError: If the name is unknown or the provider cannot be built
            (for example, a missing API key).
    """
    if config.provider not in provider_registry:
        raise ProviderError(
            f"Unknown provider '{config.provider}'. "
            f"Available providers: {', '.join(provider_registry.available())}"
        )

    try:
        return provider_registry.create(config.provider, config=config)
    except ProviderError:
        raise
    except Exception as e:
        raise ProviderError(f"Failed to create provider '{config.provider}': {e}") from e
