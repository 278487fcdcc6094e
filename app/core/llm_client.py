# app/core/llm_client.py
"""
LLM client wrapper.

Provides async:
 - extract_lead(transcript) -> dict parsed from the model's JSON answer
 - summarize(text) -> short summary string

The OpenAI SDK client is blocking, so calls run in the default thread pool.
Failures (network, provider errors, malformed JSON) propagate to the caller.
"""
import asyncio
import json
import logging
from typing import Any, Dict, Optional

from openai import OpenAI

logger = logging.getLogger("call-center.core.llm")

LEAD_EXTRACTION_PROMPT = """You are an expert AI that extracts lead information from Hindi call transcriptions.

EXTRACTION RULES:
1. NAME EXTRACTION - Look for patterns:
    - "मेरा नाम है [NAME]" → Extract [NAME]
    - "मेरा नाम [NAME] है" → Extract [NAME]
    - "मैं [NAME] बोल रही हूँ" → Extract [NAME]
    - "नाम है [NAME]" → Extract [NAME]

2. PHONE EXTRACTION - Look for patterns:
    - "मेरा वाटसप नंबर है [NUMBER]" → Extract [NUMBER]
    - "मेरा नंबर है [NUMBER]" → Extract [NUMBER]
    - "वाटसप नंबर [NUMBER]" → Extract [NUMBER]
    - Any 10-digit number starting with 6,7,8,9

3. PRODUCT EXTRACTION - Look for: जीन्स, कपड़े, सैमपल्स, ब्लैक, clothing, collection

4. LEAD QUALIFICATION:
    - Customer wants to buy/see products = TRUE
    - Has name OR phone = TRUE
    - Only complaint/status check = FALSE

5. APPOINTMENT DETECTION - Look for: मिलना, आना, शाम को, कल, समय

RESPOND IN JSON FORMAT ONLY:
{
  "is_lead": boolean,
  "customer_name": "string",
  "phone_number": "string",
  "product_interest": "string",
  "customer_need": "string",
  "is_appointment": boolean,
  "confidence_score": 0.5,
  "extraction_method": "gpt4o-mini-api"
}"""

SUMMARY_PROMPT = "You are a helpful assistant that summarizes call transcriptions concisely."


class LLMClient:
    def __init__(self, settings):
        self.settings = settings
        self.model = settings.LLM_MODEL
        self._openai: Optional[OpenAI] = None

    def _client(self) -> OpenAI:
        if self._openai is None:
            self._openai = OpenAI(api_key=self.settings.LLM_API_KEY, timeout=self.settings.HTTP_TIMEOUT_SECONDS)
        return self._openai

    async def extract_lead(self, transcript: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._blocking_extract_lead, transcript)

    async def summarize(self, text: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._blocking_summarize, text)

    def _blocking_extract_lead(self, transcript: str) -> Dict[str, Any]:
        resp = self._client().chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": LEAD_EXTRACTION_PROMPT},
                {"role": "user", "content": f'ANALYZE THIS TRANSCRIPT FOR LEAD INFORMATION: "{transcript}"'},
            ],
            response_format={"type": "json_object"},
            temperature=0.0,
            max_tokens=1000,
        )
        content = resp.choices[0].message.content or ""
        result = json.loads(content)
        if not isinstance(result, dict):
            raise ValueError("lead extraction did not return a JSON object")
        return result

    def _blocking_summarize(self, text: str) -> str:
        resp = self._client().chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SUMMARY_PROMPT},
                {"role": "user", "content": f"Summarize this call transcription: {text}"},
            ],
            max_tokens=200,
            temperature=0.3,
        )
        return resp.choices[0].message.content or ""
