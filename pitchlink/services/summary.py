from loguru import logger
from openai import OpenAI

from pitchlink.core.config import (
    OPENAI_API_KEY,
    SUMMARY_FALLBACK,
    SUMMARY_MODEL,
    SUMMARY_TIMEOUT_SECONDS,
)

SUMMARY_PROMPT = (
    "Summarize the following text into 3-5 key phrases or tags separated by commas. "
    "Focus on industry, stage, key metrics, or value proposition. "
    "Keep it very brief, suitable for a notification preview."
)


def _client() -> OpenAI:
    return OpenAI(api_key=OPENAI_API_KEY, timeout=SUMMARY_TIMEOUT_SECONDS)


def generate_summary(text: str | None) -> str:
    """Short tag-style preview of ``text``; never raises."""
    if not text or not text.strip():
        return SUMMARY_FALLBACK
    if not OPENAI_API_KEY:
        logger.debug("Summary skipped | reason=no OPENAI_API_KEY")
        return SUMMARY_FALLBACK

    try:
        resp = _client().chat.completions.create(
            model=SUMMARY_MODEL,
            messages=[
                {"role": "system", "content": SUMMARY_PROMPT},
                {"role": "user", "content": text},
            ],
            max_tokens=60,
            temperature=0.2,
        )
        summary = (resp.choices[0].message.content or "").strip()
    except Exception as e:
        logger.warning(f"Summary generation failed | model={SUMMARY_MODEL} error={e}")
        return SUMMARY_FALLBACK

    return summary or SUMMARY_FALLBACK
