# app/core/asr_client.py
"""
ASR client wrapper.

Provides async `transcribe(path)` which returns the transcript of a local audio file
using the OpenAI speech-to-text endpoint (Whisper). The SDK call is blocking and runs
in the default thread pool.
"""
import asyncio
import logging
from typing import Optional

from openai import OpenAI

logger = logging.getLogger("call-center.core.asr")


class ASRClient:
    def __init__(self, settings):
        self.settings = settings
        self.model = settings.ASR_MODEL
        self._openai: Optional[OpenAI] = None

    def _client(self) -> OpenAI:
        if self._openai is None:
            self._openai = OpenAI(api_key=self.settings.LLM_API_KEY, timeout=self.settings.HTTP_TIMEOUT_SECONDS)
        return self._openai

    async def transcribe(self, path: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._blocking_transcribe, path)

    def _blocking_transcribe(self, path: str) -> str:
        with open(path, "rb") as audio_file:
            result = self._client().audio.transcriptions.create(model=self.model, file=audio_file)
        logger.debug("Transcribed %s (%d chars)", path, len(result.text or ""))
        return result.text or ""
