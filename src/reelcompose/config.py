"""Runtime settings and collaborator construction.

Credentials come from the environment, optionally seeded from a .env
file. Collaborators (LLM, TTS, video search) are built explicitly from a
Settings value and handed to the components that use them; each builder
returns None when its credentials are missing.
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .director import DEFAULT_DIRECTOR_MODELS, Director
from .llm import OPENROUTER_BASE_URL, OpenRouterClient
from .search import TwelveLabsClient
from .tts import ElevenLabsClient


@dataclass(frozen=True)
class Settings:
    openrouter_api_key: str | None = None
    openrouter_base_url: str = OPENROUTER_BASE_URL
    director_models: tuple[str, ...] = DEFAULT_DIRECTOR_MODELS
    elevenlabs_api_key: str | None = None
    twelvelabs_api_key: str | None = None
    twelvelabs_index_id: str | None = None


def _env(environ, key: str) -> str | None:
    value = environ.get(key, "").strip()
    return value or None


def load_settings(env_file: str | None = None, environ=None) -> Settings:
    """Read settings from environ (default os.environ) after loading .env.

    Variables already set in the environment win over the .env file.
    """
    if environ is None:
        load_dotenv(env_file)
        environ = os.environ
    models = tuple(
        m.strip() for m in environ.get("DIRECTOR_MODELS", "").split(",") if m.strip()
    )
    return Settings(
        openrouter_api_key=_env(environ, "OPENROUTER_API_KEY"),
        openrouter_base_url=_env(environ, "OPENROUTER_BASE_URL") or OPENROUTER_BASE_URL,
        director_models=models or DEFAULT_DIRECTOR_MODELS,
        elevenlabs_api_key=_env(environ, "ELEVENLABS_API_KEY"),
        twelvelabs_api_key=_env(environ, "TWELVELABS_API_KEY"),
        twelvelabs_index_id=_env(environ, "TWELVELABS_INDEX_ID"),
    )


def build_llm(settings: Settings) -> OpenRouterClient | None:
    if not settings.openrouter_api_key:
        return None
    return OpenRouterClient(settings.openrouter_api_key, base_url=settings.openrouter_base_url)


def build_search(settings: Settings) -> TwelveLabsClient | None:
    if not settings.twelvelabs_api_key or not settings.twelvelabs_index_id:
        return None
    return TwelveLabsClient(settings.twelvelabs_api_key, settings.twelvelabs_index_id)


def build_tts(settings: Settings) -> ElevenLabsClient | None:
    if not settings.elevenlabs_api_key:
        return None
    return ElevenLabsClient(settings.elevenlabs_api_key)


def build_director(settings: Settings) -> Director:
    """Director wired to the configured LLM and search clients.

    Without an LLM key the Director still runs its keyword rules.
    """
    return Director(
        llm=build_llm(settings),
        models=settings.director_models,
        search=build_search(settings),
    )


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for CLI runs (INFO with --verbose, else WARNING)."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
