from __future__ import annotations

import json
import re
from typing import Any, Sequence

import requests
from pydantic import ValidationError

from ..config import settings
from ..errors import AnalysisError, CredentialError, is_credential_message
from ..models import Language, Scene, SceneList, TimedLine, TranscriptResponse

_WORD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "start": {"type": "number"},
        "end": {"type": "number"},
        "text": {"type": "string"},
    },
    "required": ["start", "end", "text"],
}

_LINE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "start": {"type": "number"},
        "end": {"type": "number"},
        "text": {"type": "string"},
        "emoji": {"type": "string"},
        "words": {"type": "array", "items": _WORD_SCHEMA},
    },
    "required": ["start", "end", "text", "words"],
}

SCENES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "scenes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "topic": {"type": "string"},
                    "summary": {"type": "string"},
                    "viralityScore": {"type": "number"},
                    "reasoning": {"type": "string"},
                    "startTime": {"type": "number"},
                    "endTime": {"type": "number"},
                    "transcript": {"type": "array", "items": _LINE_SCHEMA},
                },
                "required": [
                    "topic", "summary", "viralityScore", "reasoning",
                    "startTime", "endTime", "transcript",
                ],
            },
        },
    },
    "required": ["scenes"],
}

TRANSCRIPT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"transcript": {"type": "array", "items": _LINE_SCHEMA}},
    "required": ["transcript"],
}


_FENCE_RE = re.compile(r"^```[\w-]*[ \t]*\n(?P<body>.*?)\n?```\s*$", re.DOTALL)
_SCHEMA_REJECTION_MARKERS = ("responsejsonschema", "responseschema", "unknown name")


class GeminiService:
    """Content analysis over the Gemini REST API (AI Studio key auth)."""

    _BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    @classmethod
    def is_configured(cls) -> bool:
        return bool((settings.gemini_api_key or "").strip())

    @staticmethod
    def _request_body(
        parts: list[dict[str, Any]],
        mime_type: str,
        schema: dict[str, Any] | None,
        temperature: float,
        max_output_tokens: int | None,
    ) -> dict[str, Any]:
        generation: dict[str, Any] = {"responseMimeType": mime_type, "temperature": temperature}
        if schema is not None:
            generation["responseJsonSchema"] = schema
        if max_output_tokens is not None:
            generation["maxOutputTokens"] = int(max_output_tokens)
        return {"contents": [{"parts": parts}], "generationConfig": generation}

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        if response.status_code < 400:
            return
        detail = response.text
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            detail = data["error"].get("message") or detail
        if response.status_code in (401, 403) or is_credential_message(detail):
            raise CredentialError(f"Your API key is not valid: {detail}")
        raise AnalysisError(f"Gemini API error: {detail}")

    @classmethod
    def _generate_content(
        cls,
        *,
        parts: list[dict[str, Any]],
        response_mime_type: str,
        response_json_schema: dict[str, Any] | None = None,
        model: str | None = None,
        temperature: float = 0.35,
        max_output_tokens: int | None = None,
    ) -> dict[str, Any]:
        key = (settings.gemini_api_key or "").strip()
        if not key:
            raise CredentialError("Gemini API key is missing (CLIPCRAFT_GEMINI_API_KEY)")
        model_name = (model or settings.gemini_model).strip()
        if not model_name:
            raise AnalysisError("Gemini model is not configured (CLIPCRAFT_GEMINI_MODEL)")

        body = cls._request_body(
            parts, response_mime_type, response_json_schema, temperature, max_output_tokens
        )
        try:
            response = requests.post(
                f"{cls._BASE_URL}/models/{model_name}:generateContent",
                params={"key": key},
                json=body,
                timeout=(10, settings.gemini_timeout),
            )
        except requests.exceptions.Timeout as exc:
            raise AnalysisError(f"Gemini did not answer within {settings.gemini_timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            raise AnalysisError(f"Gemini API request failed: {exc}") from exc

        cls._raise_for_status(response)
        return response.json()

    @staticmethod
    def _reply_text(payload: dict[str, Any]) -> str:
        """Concatenated text parts of every candidate in a generateContent reply."""
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise AnalysisError("Gemini response did not contain candidates")

        texts = []
        for candidate in candidates:
            content = candidate.get("content") if isinstance(candidate, dict) else None
            parts = content.get("parts") if isinstance(content, dict) else None
            for part in parts if isinstance(parts, list) else []:
                text = part.get("text") if isinstance(part, dict) else None
                if isinstance(text, str) and text.strip():
                    texts.append(text)

        reply = "\n".join(texts).strip()
        if not reply:
            raise AnalysisError("Gemini response did not contain textual output")
        return reply

    @staticmethod
    def _unfence(raw: str) -> str:
        """Drop a surrounding ```json ... ``` block, if any."""
        trimmed = raw.strip()
        match = _FENCE_RE.match(trimmed)
        return match.group("body").strip() if match else trimmed

    @staticmethod
    def _parse_object(text: str) -> dict[str, Any] | None:
        """The reply as a JSON object, else the outermost {...} inside it."""
        candidates = [text]
        first, last = text.find("{"), text.rfind("}")
        if 0 <= first < last:
            candidates.append(text[first : last + 1])
        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
        return None

    @staticmethod
    def _image_parts(frames: Sequence[str]) -> list[dict[str, Any]]:
        parts = []
        for frame in frames:
            # Accept both bare base64 and data URLs
            data = frame.split(",", 1)[1] if frame.startswith("data:") else frame
            parts.append({"inlineData": {"mimeType": "image/jpeg", "data": data}})
        return parts

    @classmethod
    def generate_text(
        cls,
        prompt: str,
        *,
        model: str | None = None,
        max_output_tokens: int | None = None,
    ) -> str:
        payload = cls._generate_content(
            parts=[{"text": prompt}],
            response_mime_type="text/plain",
            model=model,
            max_output_tokens=max_output_tokens,
        )
        return cls._reply_text(payload)

    @classmethod
    def generate_json(
        cls,
        prompt: str,
        *,
        frames: Sequence[str] = (),
        model: str | None = None,
        response_json_schema: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Ask for a JSON object reply.

        Model revisions that reject the response schema field are retried once
        without it; fenced or chatty replies are tolerated.
        """
        parts = [{"text": prompt}, *cls._image_parts(frames)]
        request = dict(parts=parts, response_mime_type="application/json", model=model)
        try:
            payload = cls._generate_content(**request, response_json_schema=response_json_schema)
        except AnalysisError as exc:
            message = str(exc).lower()
            if response_json_schema is None or not any(m in message for m in _SCHEMA_REJECTION_MARKERS):
                raise
            payload = cls._generate_content(**request)

        parsed = cls._parse_object(cls._unfence(cls._reply_text(payload)))
        if parsed is None:
            raise AnalysisError(
                "Failed to parse AI analysis. The model may have returned an invalid format."
            )
        return parsed

    @classmethod
    def analyze_video_content(
        cls,
        frames: Sequence[str],
        duration: float,
        topic: str,
        source_language: Language,
        target_language: Language,
        length_range: tuple[float, float],
    ) -> list[Scene]:
        """Ask the model for scored, transcribed scenes of the sampled video."""
        min_len, max_len = length_range
        translation = (
            f" This involves translating from {source_language.value}."
            if source_language != target_language
            else ""
        )
        prompt = f"""
You are an expert AI video editor. Analyze a video's content from a series of frames and identify the most viral-worthy short clips.

The video is about "{topic}". It is {round(duration)} seconds long and is in {source_language.value}.
You are given {len(frames)} frames sampled evenly from the video.

1. Review the frames to understand the narrative and write a plausible, detailed transcript in {target_language.value}.{translation}
2. For each transcript line give word-by-word timestamps: every word needs its own "start" and "end".
3. Suggest a single relevant "emoji" for each transcript line.
4. Break the video into distinct scenes by topic. Each scene MUST last between {min_len:g} and {max_len:g} seconds.
5. Give each scene a "viralityScore" (1-10) with "reasoning", and a short "summary".

Return a JSON object with a "scenes" key. All timestamps are seconds relative to the {round(duration)}s video. Generate at least 5-8 distinct scenes.
""".strip()

        data = cls.generate_json(prompt, frames=frames, response_json_schema=SCENES_SCHEMA)
        try:
            return SceneList.model_validate(data).scenes
        except ValidationError as exc:
            raise AnalysisError(f"Gemini returned malformed scenes: {exc}") from exc

    @classmethod
    def generate_transcript(
        cls,
        topic: str,
        source_language: Language,
        target_language: Language,
        *,
        frames: Sequence[str] = (),
        duration: float | None = None,
    ) -> list[TimedLine]:
        """Ask the model for a flat, timestamped transcript (no scene split)."""
        length_hint = f" It is {round(duration)} seconds long." if duration else ""
        prompt = f"""
Write a plausible, detailed transcript in {target_language.value} for a video about "{topic}", spoken in {source_language.value}.{length_hint}
Each line needs "start", "end" and "text" in seconds, a "words" array with per-word "start"/"end"/"text", and one relevant "emoji".
Return a JSON object with a "transcript" key, lines in chronological order.
""".strip()

        data = cls.generate_json(prompt, frames=frames, response_json_schema=TRANSCRIPT_SCHEMA)
        try:
            lines = TranscriptResponse.model_validate(data).transcript
        except ValidationError as exc:
            raise AnalysisError(f"Gemini returned a malformed transcript: {exc}") from exc
        return sorted(lines, key=lambda line: line.start)

    @classmethod
    def generate_hook(cls, excerpt: str, target_language: Language) -> str:
        """Short viral title for a clip; quotes removed."""
        prompt = f"""
Generate a short, viral-style hook (under 15 words) in {target_language.value} for a video clip with the following summary.
Make it intriguing and attention-grabbing. Do not include quotes.
Summary: "{excerpt}"
""".strip()
        reply = cls.generate_text(prompt, model=settings.gemini_light_model)
        return reply.strip().replace('"', "").strip()
