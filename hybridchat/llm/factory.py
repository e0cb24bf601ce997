"""
Provider Factory - Builds both generation providers from settings.
"""

from typing import Any, Dict, Optional

from .base import GenerationProvider
from .local_provider import OnDeviceProvider
from .local_runtime import LocalModelRuntime
from .remote_provider import GeminiCloudProvider
from ..models.session import Backend


def create_providers(
    config: Any,
    local_runtime: Optional[LocalModelRuntime] = None,
) -> Dict[Backend, GenerationProvider]:
    """
    Create the cloud and on-device providers.

    Args:
        config: Settings object (api_key, remote_* and log_llm_calls fields)
        local_runtime: Runtime for the on-device provider (defaults to the Apple SDK)

    Returns:
        Mapping from backend to its provider. The cloud provider is always
        present; without an API key it is simply unconfigured.
    """
    return {
        Backend.CLOUD: GeminiCloudProvider(
            api_key=config.api_key,
            model=config.remote_model,
            base_url=config.remote_base_url,
            timeout=config.remote_timeout,
            log_calls=config.log_llm_calls,
        ),
        Backend.LOCAL: OnDeviceProvider(
            runtime=local_runtime,
            log_calls=config.log_llm_calls,
        ),
    }
