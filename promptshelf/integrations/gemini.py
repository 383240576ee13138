"""
Gemini Integration

Generative-model collaborator backed by the Google Gemini API: text
completion, Imagen/Veo media generation, output evaluation, categorization,
relevance ranking and prompt enhancement.
"""

import asyncio
import base64
import json
import uuid
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
import structlog
from google import genai
from google.genai import errors, types
from pydantic import BaseModel, TypeAdapter

from promptshelf.config import Settings, get_settings
from promptshelf.exceptions import (
    CategorizationError,
    EnhancementError,
    EvaluationError,
    ExecutionError,
    InvalidCredentialError,
    SearchError,
)
from promptshelf.integrations.base import GenerativeClient
from promptshelf.models.prompt import Evaluation
from promptshelf.schemas.generation import (
    CategorySuggestion,
    EnhanceMode,
    MediaKind,
    SearchCandidate,
)

logger = structlog.get_logger()

CREDENTIAL_ERROR_MARKERS = (
    "API key not valid",
    "API_KEY_INVALID",
    "Requested entity was not found",
)

CATEGORIZE_INSTRUCTIONS = """Analyze the following AI prompt and categorize it.
Prompt: "{prompt_text}"

Based on the prompt, provide:
1. A single, concise theme (e.g., "Creative Writing", "Marketing Copy", "Software Development", "Logo Design").
2. An array of up to 3 specific, relevant tags (e.g., ["sci-fi", "e-commerce", "python", "minimalist"]).

Return the response in JSON format."""

SEARCH_INSTRUCTIONS = """User is searching for prompts related to: "{query}".

Here is a list of available prompts:
{candidates}

Analyze the user's search query and the list of prompts. Return a JSON array containing the IDs of the prompts that are most semantically relevant to the user's search. Order the IDs from most to least relevant."""

EVALUATE_INSTRUCTIONS = """You are an expert prompt engineer reviewing the output of a generative model.

Prompt:
\"\"\"{prompt_text}\"\"\"

Output:
\"\"\"{output}\"\"\"

Rate how well the output fulfils the prompt on a scale from 1 (useless) to 10 (excellent), and explain the score in one or two sentences. Return the response in JSON format."""

ENHANCE_INSTRUCTIONS = {
    EnhanceMode.IMPROVE: """Rewrite the following AI prompt to make it clearer, more specific and more detailed, keeping its original intent. Provide up to 3 improved versions.
Prompt: "{prompt_text}"

Return the response in JSON format.""",
    EnhanceMode.VARIATIONS: """Suggest up to 3 creative variations of the following AI prompt that explore different angles, styles or tones.
Prompt: "{prompt_text}"

Return the response in JSON format.""",
}


class _EvaluationPayload(BaseModel):
    score: float
    feedback: str


class _CategoryPayload(BaseModel):
    theme: str
    tags: List[str]


class _EnhancePayload(BaseModel):
    suggestions: List[str]


_ID_LIST = TypeAdapter(List[str])


def is_credential_error(error: errors.APIError) -> bool:
    """Whether an API error means the key is missing, invalid or not entitled."""
    if getattr(error, "code", None) in (401, 403):
        return True
    return any(marker in str(error) for marker in CREDENTIAL_ERROR_MARKERS)


class GeminiClient(GenerativeClient):
    """
    Operational client for the Gemini API.

    Text operations use the configured text model with JSON response
    schemas; images use Imagen and videos use Veo, whose long-running
    operation is polled until done.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        api_key: Optional[str] = None,
        client: Optional[genai.Client] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else self.settings.gemini_api_key
        self._client = client
        self._http_client = http_client

        logger.debug(
            "Gemini client initialized",
            text_model=self.settings.text_model,
            has_key=bool(self.api_key),
        )

    def _get_client(self) -> genai.Client:
        """Get or create the Gemini SDK client."""
        if self._client is None:
            if not self.api_key:
                raise InvalidCredentialError(
                    "No Gemini API key configured. Set GEMINI_API_KEY."
                )
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client for media downloads."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.settings.request_timeout,
                follow_redirects=True,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def _generate_json(self, contents: str, schema) -> str:
        client = self._get_client()
        response = await client.aio.models.generate_content(
            model=self.settings.text_model,
            contents=contents,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        if not response.text:
            raise ValueError("empty response from model")
        return response.text

    # =========================================================================
    # Execution
    # =========================================================================

    async def run_completion(self, prompt_text: str) -> str:
        """Run a text prompt and return the model output."""
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.settings.text_model,
                contents=prompt_text,
            )
        except errors.APIError as e:
            logger.error("Completion failed", error=str(e), code=getattr(e, "code", None))
            if is_credential_error(e):
                raise InvalidCredentialError() from e
            raise ExecutionError(f"Failed to run prompt: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Completion transport failed", error=str(e))
            raise ExecutionError(f"Could not reach the Gemini API: {e}") from e

        if not response.text:
            raise ExecutionError("The model returned an empty response.")
        return response.text

    async def generate_media(self, prompt_text: str, kind: MediaKind) -> str:
        """Generate an image (data URI) or a video (local file path)."""
        logger.info("Generating media", kind=kind.value)
        try:
            if kind == MediaKind.IMAGE:
                return await self._generate_image(prompt_text)
            return await self._generate_video(prompt_text)
        except errors.APIError as e:
            logger.error("Media generation failed", kind=kind.value, error=str(e))
            if is_credential_error(e):
                raise InvalidCredentialError() from e
            raise ExecutionError(f"Failed to generate {kind.value.lower()}: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Media download failed", kind=kind.value, error=str(e))
            raise ExecutionError(f"Failed to download generated {kind.value.lower()}: {e}") from e
        except OSError as e:
            logger.error("Media could not be saved", kind=kind.value, error=str(e))
            raise ExecutionError(f"Failed to save generated {kind.value.lower()}: {e}") from e

    async def _generate_image(self, prompt_text: str) -> str:
        client = self._get_client()
        response = await client.aio.models.generate_images(
            model=self.settings.image_model,
            prompt=prompt_text,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                output_mime_type="image/jpeg",
            ),
        )
        if not response.generated_images:
            raise ExecutionError("Image generation returned no images.")

        image = response.generated_images[0].image
        mime_type = image.mime_type or "image/jpeg"
        encoded = base64.b64encode(image.image_bytes).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    async def _generate_video(self, prompt_text: str) -> str:
        client = self._get_client()
        operation = await client.aio.models.generate_videos(
            model=self.settings.video_model,
            prompt=prompt_text,
            config=types.GenerateVideosConfig(number_of_videos=1),
        )

        while not operation.done:
            logger.debug("Waiting for video operation", name=getattr(operation, "name", None))
            await asyncio.sleep(self.settings.video_poll_interval)
            operation = await client.aio.operations.get(operation)

        if operation.error:
            raise ExecutionError(f"Video generation failed: {operation.error}")

        videos = operation.response.generated_videos if operation.response else None
        if not videos or not videos[0].video or not videos[0].video.uri:
            raise ExecutionError("Video generation returned no video.")

        return await self._download_video(videos[0].video.uri)

    async def _download_video(self, uri: str) -> str:
        http = await self._get_http_client()
        response = await http.get(uri, params={"key": self.api_key})
        response.raise_for_status()

        media_path: Path = self.settings.media_path
        media_path.mkdir(parents=True, exist_ok=True)
        target = media_path / f"{uuid.uuid4().hex}.mp4"
        target.write_bytes(response.content)

        logger.info("Video saved", path=str(target), size=len(response.content))
        return str(target)

    # =========================================================================
    # Analysis
    # =========================================================================

    async def evaluate_output(self, prompt_text: str, output: str) -> Evaluation:
        """Score an output against the prompt that produced it."""
        contents = EVALUATE_INSTRUCTIONS.format(prompt_text=prompt_text, output=output)
        try:
            payload = _EvaluationPayload.model_validate_json(
                await self._generate_json(contents, _EvaluationPayload)
            )
            return Evaluation(score=payload.score, feedback=payload.feedback)
        except (errors.APIError, httpx.HTTPError, InvalidCredentialError, ValueError) as e:
            logger.error("Evaluation failed", error=str(e))
            raise EvaluationError("Failed to evaluate the test result. Please try again.") from e

    async def suggest_categorization(self, prompt_text: str) -> CategorySuggestion:
        """Suggest a theme and up to three tags for a prompt."""
        contents = CATEGORIZE_INSTRUCTIONS.format(prompt_text=prompt_text)
        try:
            payload = _CategoryPayload.model_validate_json(
                await self._generate_json(contents, _CategoryPayload)
            )
            return CategorySuggestion(theme=payload.theme, tags=payload.tags)
        except (errors.APIError, httpx.HTTPError, InvalidCredentialError, ValueError) as e:
            logger.error("Categorization failed", error=str(e))
            raise CategorizationError("Failed to categorize prompt with AI. Please try again.") from e

    async def rank_by_relevance(
        self,
        candidates: Sequence[SearchCandidate],
        query: str,
    ) -> List[str]:
        """Return candidate ids ordered from most to least relevant."""
        if not candidates:
            return []

        contents = SEARCH_INSTRUCTIONS.format(
            query=query,
            candidates=json.dumps([c.model_dump(by_alias=True) for c in candidates]),
        )
        try:
            return _ID_LIST.validate_json(await self._generate_json(contents, list[str]))
        except (errors.APIError, httpx.HTTPError, InvalidCredentialError, ValueError) as e:
            logger.error("Semantic search failed", error=str(e), query=query)
            raise SearchError("AI search failed. Please try a different query.") from e

    async def enhance_prompt(self, prompt_text: str, mode: EnhanceMode) -> List[str]:
        """Suggest improved rewrites or variations of a prompt."""
        contents = ENHANCE_INSTRUCTIONS[mode].format(prompt_text=prompt_text)
        try:
            payload = _EnhancePayload.model_validate_json(
                await self._generate_json(contents, _EnhancePayload)
            )
        except (errors.APIError, httpx.HTTPError, InvalidCredentialError, ValueError) as e:
            logger.error("Enhancement failed", error=str(e), mode=mode.value)
            raise EnhancementError("Failed to get suggestions. Please try again.") from e
        return [s.strip() for s in payload.suggestions if s.strip()]
