"""External service integrations."""

from .anthropic import AnthropicClient
from .credentials import CredentialGate, EnvCredentialGate, PromptCredentialGate
from .generation import GenerationService, VertexGenerationService
from .imagen import ImagenClient, ImageResult
from .veo import VeoClient, ClipResult, OperationStatus

__all__ = [
    "AnthropicClient",
    "CredentialGate",
    "EnvCredentialGate",
    "PromptCredentialGate",
    "GenerationService",
    "VertexGenerationService",
    "ImagenClient",
    "ImageResult",
    "VeoClient",
    "ClipResult",
    "OperationStatus",
]
