"""Request orchestration for image generation.

:class:`GenerationService` runs one inbound call through the pipeline::

    rate-limit admission
      -> credential presence check
      -> JSON body parse
      -> schema validation
      -> prompt compilation
      -> upstream call
      -> result

Each stage either passes its output on or stops the pipeline with a
classified :class:`~studiogen.core.errors.StudiogenError`.  The service
converts every failure into a :class:`GenerationFailure` carrying only a
catalog message, so no internal detail reaches the caller.  Full detail goes
to the server log.

The service holds no per-request state.  The only shared mutable state is the
admission controller's ledger.
"""

from __future__ import annotations

import json
import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from studiogen.core.errors import (
    INVALID_FORMAT_MESSAGE,
    UNEXPECTED_MESSAGE,
    ConfigurationError,
    ErrorKind,
    InvalidRequestError,
    RateLimitExceededError,
    StudiogenError,
)
from studiogen.core.prompt_compiler import UpstreamRequest, compile_generation_request
from studiogen.core.rate_limiter import AdmissionController
from studiogen.core.schemas import GenerationRequest, validate_generation_request
from studiogen.core.upstream import ImageGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationSuccess:
    """A generated image and the seed that produced it."""

    image_url: str
    seed: int
    request: GenerationRequest
    upstream_request: UpstreamRequest

    def to_response(self) -> dict[str, Any]:
        return {"imageUrl": self.image_url, "seed": self.seed}

    def history_record(self) -> dict[str, Any]:
        """Values a history store needs to remember this generation."""
        return {
            "id": str(uuid.uuid4()),
            "image_url": self.image_url,
            "prompt_state": self.request.prompt_state.model_dump(),
            "structured_prompt": self.upstream_request.structured_prompt.model_dump(),
            "refinement": (self.request.refinement or "").strip() or None,
            "negative_prompt": self.upstream_request.negative_prompt,
            "guidance_scale": self.upstream_request.guidance_scale,
            "seed": self.seed,
            "reference_image_url": self.request.reference_image_url,
            "mode": self.request.mode.value,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }


@dataclass(frozen=True)
class GenerationFailure:
    """A classified failure, safe to serialise to the caller."""

    kind: ErrorKind
    message: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message}

    @classmethod
    def from_error(cls, exc: StudiogenError) -> GenerationFailure:
        headers: dict[str, str] = {}
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after), "X-RateLimit-Remaining": "0"}
        return cls(
            kind=exc.kind,
            message=exc.public_message,
            status_code=exc.status_code,
            headers=headers,
        )


GenerationResult = Union[GenerationSuccess, GenerationFailure]


class GenerationService:
    """Composes admission, validation, compilation and the upstream call.

    Args:
        gateway: Upstream image provider.
        rate_limiter: Admission controller shared by all requests.
        retry_after_seconds: Fixed Retry-After hint on denial.  It does not
            reflect the time actually left in the caller's window.
        rng: Random source for seed drawing.
    """

    def __init__(
        self,
        gateway: ImageGateway,
        rate_limiter: AdmissionController,
        *,
        retry_after_seconds: int = 3600,
        rng: random.Random | None = None,
    ) -> None:
        self.gateway = gateway
        self.rate_limiter = rate_limiter
        self.retry_after_seconds = retry_after_seconds
        self._rng = rng

    async def generate(self, body: bytes | str, identity: str) -> GenerationResult:
        """Run one generation call end to end.

        Args:
            body: Raw request body.
            identity: Rate-limiting key for the caller.

        Returns:
            :class:`GenerationSuccess` or :class:`GenerationFailure`.  This
            method does not raise.
        """
        try:
            return await self._generate(body, identity)
        except StudiogenError as exc:
            return GenerationFailure.from_error(exc)
        except Exception:
            logger.exception("Unexpected error in generate-image")
            return GenerationFailure(
                kind=ErrorKind.UNEXPECTED,
                message=UNEXPECTED_MESSAGE,
                status_code=500,
            )

    def compile_preview(self, body: bytes | str) -> UpstreamRequest:
        """Validate and compile a body without admission or upstream call.

        Raises:
            InvalidRequestError: If the body is malformed or invalid.
        """
        request = validate_generation_request(parse_body(body))
        return compile_generation_request(request, rng=self._rng)

    async def _generate(self, body: bytes | str, identity: str) -> GenerationSuccess:
        admission = self.rate_limiter.admit(identity)
        if not admission.allowed:
            logger.warning("Rate limit exceeded for identity: %s", identity)
            raise RateLimitExceededError(
                f"Identity {identity} exhausted its window",
                retry_after=self.retry_after_seconds,
            )

        if not self.gateway.configured:
            logger.error("Upstream credential is not configured")
            raise ConfigurationError("Upstream credential is not configured")

        request = validate_generation_request(parse_body(body))
        logger.info(
            "Validated request: mode=%s, objects=%d, refinement_length=%d, "
            "seed=%s, guidance_scale=%s, negative_prompt_length=%d",
            request.mode.value,
            len(request.prompt_state.objects),
            len(request.refinement or ""),
            request.seed,
            request.guidance_scale,
            len(request.negative_prompt or ""),
        )

        upstream_request = compile_generation_request(request, rng=self._rng)
        image_url = await self.gateway.generate(upstream_request.to_payload())

        return GenerationSuccess(
            image_url=image_url,
            seed=upstream_request.seed,
            request=request,
            upstream_request=upstream_request,
        )


def parse_body(body: bytes | str) -> Any:
    """Decode a JSON request body.

    Raises:
        InvalidRequestError: If the body is not valid JSON.
    """
    try:
        return json.loads(body)
    except ValueError as exc:
        logger.error("Failed to parse request JSON")
        raise InvalidRequestError(
            "Request body is not valid JSON",
            public_message=INVALID_FORMAT_MESSAGE,
            original_error=exc,
        ) from exc
