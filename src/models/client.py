"""Model client implementations for OpenAI-compatible endpoints."""

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n(.*?)```", re.DOTALL)


class StructuredOutputError(ValueError):
    """Raised when a model response does not match the requested schema."""


@dataclass
class Message:
    """Chat message."""

    role: str
    content: str | list[dict]


def structured_output_instructions(json_schema: dict) -> str:
    """Instructions appended to a request that expects a JSON array of items."""
    schema_text = json.dumps(json_schema, ensure_ascii=False, indent=2)
    return (
        'Respond with a single JSON object of the form {"items": [...]}. '
        "Each element of items must be an object matching this JSON schema exactly, "
        "with no extra keys:\n"
        f"{schema_text}"
    )


def parse_structured_items(content: str, item_model: type[ModelT]) -> list[ModelT]:
    """Parse and validate a JSON array of items from a model response.

    Accepts a bare array, an object holding the array under ``items`` (or
    under its only list-valued key), and fenced code blocks.

    Raises:
        StructuredOutputError: If the response is not JSON or any item
            violates the schema
    """
    text = content.strip()
    fence = _FENCE_PATTERN.search(text)
    if fence:
        text = fence.group(1).strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise StructuredOutputError(f"Response is not valid JSON: {e}") from e

    if isinstance(data, dict):
        if isinstance(data.get("items"), list):
            data = data["items"]
        else:
            lists = [v for v in data.values() if isinstance(v, list)]
            if len(lists) != 1:
                raise StructuredOutputError("Response object does not contain an item array")
            data = lists[0]

    try:
        return TypeAdapter(list[item_model]).validate_python(data)
    except ValidationError as e:
        raise StructuredOutputError(f"Response violates schema: {e}") from e


class LLMClient:
    """Client for text-based language models and embeddings."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        model_name: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 300.0,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize LLM client."""
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model_name = model_name or "default"
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self.client = httpx.Client(timeout=timeout, transport=transport)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _build_payload(
        self,
        messages: list[Message],
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> dict:
        """Build the API payload with all configured parameters."""
        payload = {
            "model": self.model_name,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": temperature if temperature is not None else self.temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _post(self, path: str, payload: dict) -> dict:
        """POST with retry and exponential backoff.

        Raises:
            httpx.HTTPStatusError: On HTTP errors after retries
            httpx.RequestError: On network errors after retries
        """
        url = f"{self.base_url}{path}"

        for attempt in range(self.max_retries):
            try:
                response = self.client.post(url, json=payload, headers=self._headers())
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                if attempt < self.max_retries - 1:
                    logger.warning("Request to %s failed (%s), retrying", url, e)
                    time.sleep(self.retry_delay * (2**attempt))
                else:
                    raise

    def generate(
        self,
        messages: list[Message],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Generate text completion."""
        payload = self._build_payload(messages, max_tokens, temperature)
        result = self._post("/chat/completions", payload)
        content = result["choices"][0]["message"]["content"]
        if not content or not content.strip():
            raise ValueError("Empty response from model")
        return content

    def generate_structured(
        self,
        messages: list[Message],
        item_model: type[ModelT],
        json_schema: dict | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> list[ModelT]:
        """Generate a JSON array of items validated against ``item_model``.

        Args:
            messages: Chat messages describing the task
            item_model: Pydantic model every item must satisfy
            json_schema: Schema shown to the model (defaults to the item
                model's schema); may narrow fields to closed sets
            max_tokens: Override max tokens
            temperature: Override temperature

        Returns:
            Validated items

        Raises:
            StructuredOutputError: If the response violates the schema
        """
        schema = json_schema or item_model.model_json_schema()
        request = list(messages) + [
            Message(role="system", content=structured_output_instructions(schema))
        ]
        payload = self._build_payload(request, max_tokens, temperature, json_mode=True)
        result = self._post("/chat/completions", payload)
        content = result["choices"][0]["message"]["content"] or ""
        return parse_structured_items(content, item_model)

    def embed(self, text: str) -> list[float]:
        """Compute an embedding vector for ``text``."""
        result = self._post("/embeddings", {"model": self.model_name, "input": text})
        embedding = result["data"][0]["embedding"]
        if not embedding:
            raise ValueError("Empty embedding from model")
        return [float(x) for x in embedding]

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class VLMClient(LLMClient):
    """Client for vision-language models."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        model_name: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 300.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        transport: httpx.BaseTransport | None = None,
        max_dimension: int = 2048,
    ):
        """Initialize VLM client.

        Args:
            max_dimension: Maximum image dimension; scanned pages need enough
                resolution for small print
            Other args: See LLMClient
        """
        super().__init__(
            base_url=base_url,
            api_key=api_key,
            model_name=model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
            transport=transport,
        )
        self.max_dimension = max_dimension
        self._image_loader = None

    @property
    def image_loader(self):
        """Lazy-load the page image loader to avoid circular imports."""
        if self._image_loader is None:
            from question_bank.utils.images import PageImageLoader

            self._image_loader = PageImageLoader(max_dimension=self.max_dimension)
        return self._image_loader

    def _image_message(self, text: str, image_path: Path | str) -> Message:
        image_data = self.image_loader.load_as_base64(image_path, output_format="JPEG", quality=95)
        return Message(
            role="user",
            content=[
                {"type": "text", "text": text},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/jpeg;base64,{image_data}"},
                },
            ],
        )

    def extract(
        self,
        instructions: str,
        item_model: type[ModelT],
        image_path: Path | str,
        json_schema: dict | None = None,
        temperature: float | None = 0.1,
    ) -> list[ModelT]:
        """Extract schema-validated items from an image.

        Args:
            instructions: Extraction instructions
            item_model: Pydantic model every extracted item must satisfy
            image_path: Path to the source image
            json_schema: Schema shown to the model, e.g. with closed enums
            temperature: Sampling temperature (low for faithful transcription)

        Returns:
            Validated items

        Raises:
            StructuredOutputError: If the response violates the schema
        """
        messages = [self._image_message(instructions, image_path)]
        return self.generate_structured(
            messages, item_model, json_schema=json_schema, temperature=temperature
        )
