"""
Model access and prompt budgeting.

Everything that talks to the language model goes through
:func:`generate_object`, which runs a single-turn Agents SDK agent with a
pydantic ``output_type`` and re-validates whatever comes back before handing
it to the caller. :func:`optimize_prompt_length` keeps scraped content under
a token budget measured with tiktoken.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Optional, Protocol, Sequence, Type, TypeVar

import tiktoken
from openai import AsyncOpenAI
from openai.types.shared import Reasoning
from pydantic import BaseModel
from agents import (
    Agent,
    ModelSettings,
    RunConfig,
    Runner,
    set_default_openai_api,
    set_default_openai_client,
)

from deep_investigation.config import Settings
from deep_investigation.langfuse_integration import is_langfuse_enabled
from deep_investigation.prompt import generate_system_prompt
from deep_investigation.text_splitter import RecursiveCharacterTextSplitter

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Rough characters-per-token ratio used to estimate how much text to drop.
CHARS_PER_TOKEN = 3
MIN_SEGMENT_SIZE = 140
ENCODING_NAME = "o200k_base"


class TokenEncoder(Protocol):
    def encode(self, text: str) -> Sequence[int]:
        ...


# -----------------------------
# Token budgeting
# -----------------------------

@functools.lru_cache(maxsize=1)
def get_token_encoder() -> TokenEncoder:
    """Return the process-wide tiktoken encoder."""
    return tiktoken.get_encoding(ENCODING_NAME)


def optimize_prompt_length(
    content: str,
    max_tokens: Optional[int] = None,
    encoder: Optional[TokenEncoder] = None,
) -> str:
    """
    Trim ``content`` until it fits in ``max_tokens``.

    Args:
        content: Text to trim.
        max_tokens: Token budget. Defaults to ``CONTEXT_SIZE`` from the environment.
        encoder: Object with an ``encode`` method. Defaults to tiktoken ``o200k_base``.

    Returns:
        The content unchanged when it already fits, otherwise a prefix of it
        that ends on a natural break where possible.
    """
    if not content:
        return ""

    if max_tokens is None:
        max_tokens = Settings.from_env().context_size
    if encoder is None:
        encoder = get_token_encoder()

    token_count = len(encoder.encode(content))
    if token_count <= max_tokens:
        return content

    excess_tokens = token_count - max_tokens
    target_length = len(content) - excess_tokens * CHARS_PER_TOKEN

    if target_length < MIN_SEGMENT_SIZE:
        return content[:MIN_SEGMENT_SIZE]

    splitter = RecursiveCharacterTextSplitter(chunk_size=target_length, chunk_overlap=0)
    chunks = splitter.split_text(content)
    trimmed = chunks[0] if chunks else ""

    # Splitting made no progress, fall back to a hard cut.
    if len(trimmed) == len(content):
        return optimize_prompt_length(content[:target_length], max_tokens, encoder)

    return optimize_prompt_length(trimmed, max_tokens, encoder)


# -----------------------------
# Model configuration
# -----------------------------

def is_reasoning_model(model_name: str) -> bool:
    return model_name.startswith("o")


def get_model_settings(model_name: str, temperature: Optional[float] = None, max_tokens: Optional[int] = None) -> ModelSettings:
    """
    Returns model settings appropriate for the model family.

    Reasoning models (o1, o3-mini, o4-mini, ...) get medium reasoning effort and
    no temperature, which they reject. Other models get the given temperature.
    """
    if is_reasoning_model(model_name):
        return ModelSettings(
            max_tokens=max_tokens,
            reasoning=Reasoning(effort="medium"),
        )
    return ModelSettings(temperature=temperature, max_tokens=max_tokens)


def get_default_model() -> str:
    return Settings.from_env().model


def configure_openai_client(settings: Settings) -> Optional[AsyncOpenAI]:
    """
    Install an ``AsyncOpenAI`` client as the Agents SDK default.

    Nothing is changed when neither a key nor a custom endpoint is configured,
    leaving the SDK to read ``OPENAI_API_KEY`` itself. Custom endpoints are
    assumed to speak the Chat Completions API only.
    """
    if not settings.openai_api_key and not settings.openai_endpoint:
        return None

    client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_endpoint)
    set_default_openai_client(client, use_for_tracing=False)
    if settings.openai_endpoint:
        set_default_openai_api("chat_completions")
        logger.info(f"Using OpenAI-compatible endpoint: {settings.openai_endpoint}")
    return client


# -----------------------------
# Structured generation
# -----------------------------

def _validate_output(schema: Type[T], output: Any) -> T:
    if isinstance(output, str):
        return schema.model_validate_json(output)
    return schema.model_validate(output)


async def generate_object(
    schema: Type[T],
    *,
    prompt: str,
    system: Optional[str] = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
    workflow_name: str = "Structured Generation",
) -> T:
    """
    Run a single structured-generation call.

    Args:
        schema: Pydantic model the answer must conform to.
        prompt: User prompt.
        system: System instructions. Defaults to :func:`generate_system_prompt`.
        model: Model name. Defaults to ``OPENAI_MODEL``.
        timeout: Seconds before the call is abandoned with ``asyncio.TimeoutError``.
        workflow_name: Name reported to tracing.

    Returns:
        A validated instance of ``schema``.

    Raises:
        asyncio.TimeoutError: If ``timeout`` elapses.
        pydantic.ValidationError: If the model's answer does not match ``schema``.
    """
    model = model or get_default_model()

    agent = Agent(
        name=schema.__name__,
        instructions=system or generate_system_prompt(),
        output_type=schema,
    )
    run_config = RunConfig(
        model=model,
        model_settings=get_model_settings(model),
        tracing_disabled=not is_langfuse_enabled(),
        workflow_name=workflow_name,
    )

    run = Runner.run(agent, prompt, run_config=run_config, max_turns=1)
    if timeout is not None:
        result = await asyncio.wait_for(run, timeout=timeout)
    else:
        result = await run

    return _validate_output(schema, result.final_output)
