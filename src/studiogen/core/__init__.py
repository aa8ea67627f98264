"""Core functionality for structured-prompt image generation.

This package holds everything the HTTP layer composes:

- **config**: Configuration management using Pydantic Settings
- **schemas**: Request shape, bounds and validation
- **rate_limiter**: Per-identity fixed-window admission control
- **prompt_compiler**: Prompt state to upstream structured payload
- **upstream**: Outbound call to the image provider
- **service**: Orchestration of the above into one generation call
- **errors**: Failure taxonomy and the user-safe message catalog
- **history_store**: File-backed record of past generations
- **options**: Option catalogs for the prompt form

Usage Example
-------------
    from studiogen.core import GenerationService, FixedWindowRateLimiter, FalImageGateway

    service = GenerationService(
        FalImageGateway(api_key),
        FixedWindowRateLimiter(capacity=10, window_seconds=3600),
    )
    result = await service.generate(body, identity="203.0.113.7")
"""

from studiogen.core.config import StudiogenConfig, config
from studiogen.core.rate_limiter import AdmissionController, FixedWindowRateLimiter
from studiogen.core.service import GenerationFailure, GenerationService, GenerationSuccess
from studiogen.core.upstream import FalImageGateway, ImageGateway

__all__ = [
    "AdmissionController",
    "FalImageGateway",
    "FixedWindowRateLimiter",
    "GenerationFailure",
    "GenerationService",
    "GenerationSuccess",
    "ImageGateway",
    "StudiogenConfig",
    "config",
]
