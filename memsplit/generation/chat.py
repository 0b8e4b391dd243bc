"""
Chat Generation
===============

CONCEPT: One Loop, Several Providers
------------------------------------
OpenAI and OpenRouter both speak the OpenAI chat-completions format.
We use the `openai` Python library for both and only swap base_url and
api_key. Cohere has its own SDK (`cohere.ClientV2`) with the same
role/content message list but a different response shape, so _complete
dispatches on the provider's "sdk" field.

Adding another OpenAI-compatible provider = one more entry in PROVIDERS.

CONCEPT: Personalization Goes in the System Message
---------------------------------------------------
When the user has filled in meaningful preferences, they become the
system prompt (see memsplit.personalization.prompt). Otherwise a short
base prompt is used. Conversation history follows, then the new user turn.

FALLBACK LOGIC:
If the requested provider fails (missing key, network error, rate limit),
try the others in PROVIDERS order before giving up.
"""

import logging
import os
from typing import Optional

from cohere import ClientV2
from dotenv import load_dotenv
from openai import OpenAI

from memsplit.personalization.prompt import (
    ASSISTANT_NAME,
    format_user_context,
    generate_system_prompt,
    should_include_personalization,
)

load_dotenv()

logger = logging.getLogger(__name__)

BASE_PROMPT = f"You are {ASSISTANT_NAME}, a helpful AI assistant."

PROVIDERS = {
    "openai": {
        "sdk": "openai",
        "env_key": "OPENAI_API_KEY",
        "base_url": None,
        "model": "gpt-4o-mini",
    },
    "openrouter": {
        "sdk": "openai",
        "env_key": "OPENROUTER_API_KEY",
        "base_url": "https://openrouter.ai/api/v1",
        "model": "openai/gpt-4o-mini",
    },
    "cohere": {
        "sdk": "cohere",
        "env_key": "COHERE_API_KEY",
        "base_url": None,
        "model": "command-a-03-2025",
    },
}


def get_llm_client(provider: str = "openai"):
    """
    Create a client for the given provider.

    Returns (client, model_name) tuple. The client is an OpenAI client for
    OpenAI-compatible providers and a cohere.ClientV2 for Cohere.
    """
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown provider: {provider}")

    settings = PROVIDERS[provider]
    api_key = os.getenv(settings["env_key"])
    if not api_key:
        raise ValueError(f"{settings['env_key']} not set in .env")

    if settings["sdk"] == "cohere":
        client = ClientV2(api_key=api_key)
    elif settings["base_url"]:
        client = OpenAI(api_key=api_key, base_url=settings["base_url"])
    else:
        client = OpenAI(api_key=api_key)
    return client, settings["model"]


def build_messages(
    history: list[dict],
    user_message: str,
    preferences: Optional[dict] = None,
) -> list[dict]:
    """System prompt + prior turns ({"role", "content"}) + the new user turn."""
    if should_include_personalization(preferences):
        system_prompt = generate_system_prompt(preferences)
        logger.debug("Personalized prompt for %s", format_user_context(preferences))
    else:
        system_prompt = BASE_PROMPT

    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": m["role"], "content": m["content"]} for m in history)
    messages.append({"role": "user", "content": user_message})
    return messages


def _complete(provider: str, client, model: str, messages: list[dict], temperature: float, max_tokens: int) -> str:
    if PROVIDERS[provider]["sdk"] == "cohere":
        response = client.chat(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.message.content[0].text

    response = client.chat.completions.create(
        model=model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    return response.choices[0].message.content


def generate_reply(
    history: list[dict],
    user_message: str,
    provider: str = "openai",
    preferences: Optional[dict] = None,
    temperature: float = 0.7,
    max_tokens: int = 1024,
) -> dict:
    """
    Send the conversation to the LLM and return the reply with metadata.

    Never raises for provider failures; when every provider fails the
    answer carries the last error and provider is "none".
    """
    messages = build_messages(history, user_message, preferences)

    providers_to_try = [provider] + [p for p in PROVIDERS if p != provider]
    last_error = None

    for p in providers_to_try:
        try:
            client, model = get_llm_client(p)
            answer = _complete(p, client, model, messages, temperature, max_tokens)

            return {
                "answer": answer,
                "provider": p,
                "model": model,
            }

        except Exception as e:
            logger.warning("%s failed: %s", p, e)
            last_error = e
            continue

    return {
        "answer": f"Error: All providers failed. Last error: {last_error}",
        "provider": "none",
        "model": "none",
    }
