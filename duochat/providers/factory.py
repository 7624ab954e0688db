"""Build backend adapters from config, keyed by backend tag."""

import logging

from config.config_loader import AppConfig
from duochat.providers.anthropic import AnthropicProvider
from duochat.providers.base import AIProvider, ProviderError
from duochat.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}


def build_providers(config: AppConfig) -> dict[str, AIProvider]:
    """Build every backend that has an API key. Unknown SDKs are skipped with a warning."""
    providers: dict[str, AIProvider] = {}
    for name in config.backends:
        if name not in config.available_providers:
            continue
        model_cfg = config.models[name]
        provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
        if provider_cls is None:
            logger.warning("Backend '%s' uses unknown sdk '%s', skipping", name, model_cfg.sdk)
            continue
        try:
            providers[name] = provider_cls(model_cfg)
        except ProviderError as exc:
            logger.warning("Failed to instantiate backend '%s': %s", name, exc)
    return providers
