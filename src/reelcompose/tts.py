"""Text-to-speech voiceover via the ElevenLabs API.

Audio is optional: synthesize() returns None on any failure and the
video renders without a voice track.
"""

import base64
import logging
import re
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)


ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
TTS_MODEL_ID = "eleven_turbo_v2_5"
REQUEST_TIMEOUT = 60
MS_PER_WORD = 150


@dataclass(frozen=True)
class VoicePreset:
    voice_id: str
    stability: float
    similarity_boost: float
    style: float
    use_speaker_boost: bool


VOICE_PRESETS = {
    # Adam, energetic
    "hype": VoicePreset("pNInz6obpgDQGcFmaJgB", 0.3, 0.8, 0.5, True),
    # Rachel, calm
    "minimal": VoicePreset("21m00Tcm4TlvDq8ikWAM", 0.7, 0.5, 0.2, False),
    # Fin, sophisticated
    "luxury": VoicePreset("D38z5RcWu1voky8WS1ja", 0.6, 0.6, 0.3, False),
    # Gigi, cheerful
    "playful": VoicePreset("jBpfuIE2acCO8z3wKNLl", 0.4, 0.7, 0.6, True),
}


@dataclass(frozen=True)
class TTSResult:
    audio_url: str
    duration_ms: int


def estimate_duration_ms(text: str) -> int:
    return len(text.split()) * MS_PER_WORD


def clean_script(script: str) -> str:
    """Flatten a multi-line script into one spoken paragraph."""
    text = re.sub(r"\n+", ". ", script)
    return re.sub(r"\s+", " ", text).strip()


class ElevenLabsClient:
    def __init__(self, api_key: str, session: requests.Session | None = None):
        self.api_key = api_key
        self.session = session or requests.Session()

    def synthesize(self, text: str, style: str = "hype") -> TTSResult | None:
        """Speech for text as a base64 data URL, or None on failure."""
        preset = VOICE_PRESETS.get(style, VOICE_PRESETS["hype"])
        try:
            response = self.session.post(
                f"{ELEVENLABS_API_URL}/text-to-speech/{preset.voice_id}",
                headers={"xi-api-key": self.api_key, "Content-Type": "application/json"},
                json={
                    "text": text,
                    "model_id": TTS_MODEL_ID,
                    "voice_settings": {
                        "stability": preset.stability,
                        "similarity_boost": preset.similarity_boost,
                        "style": preset.style,
                        "use_speaker_boost": preset.use_speaker_boost,
                    },
                },
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("TTS generation failed: %s", e)
            return None

        audio = base64.b64encode(response.content).decode("ascii")
        return TTSResult(
            audio_url=f"data:audio/mpeg;base64,{audio}",
            duration_ms=estimate_duration_ms(text),
        )

    def voiceover(self, script: str, style: str = "hype") -> TTSResult | None:
        return self.synthesize(clean_script(script), style)
