"""LLM module - the two generation providers behind one streaming interface."""

from .base import GenerationProvider
from .remote_provider import GeminiCloudProvider
from .local_provider import OnDeviceProvider, build_local_prompt
from .local_runtime import (
    LocalAvailability, LocalModelRuntime, LocalModelSession, AppleFoundationRuntime,
)
from .streaming import cumulative_to_deltas
from .factory import create_providers

__all__ = [
    'GenerationProvider',
    'GeminiCloudProvider',
    'OnDeviceProvider',
    'build_local_prompt',
    'LocalAvailability',
    'LocalModelRuntime',
    'LocalModelSession',
    'AppleFoundationRuntime',
    'cumulative_to_deltas',
    'create_providers',
]
