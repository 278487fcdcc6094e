# app/api/deps.py
"""
Shared provider clients, exposed as FastAPI dependencies so tests can override them.
"""
from typing import Optional

from app.config import get_settings
from app.core.asr_client import ASRClient
from app.core.exotel_client import ExotelClient
from app.core.llm_client import LLMClient

settings = get_settings()

_exotel: Optional[ExotelClient] = None
_llm: Optional[LLMClient] = None
_asr: Optional[ASRClient] = None


def get_exotel_client() -> ExotelClient:
    global _exotel
    if _exotel is None:
        _exotel = ExotelClient(settings)
    return _exotel


def get_llm_client() -> LLMClient:
    global _llm
    if _llm is None:
        _llm = LLMClient(settings)
    return _llm


def get_asr_client() -> ASRClient:
    global _asr
    if _asr is None:
        _asr = ASRClient(settings)
    return _asr


async def close_clients() -> None:
    global _exotel
    if _exotel is not None:
        await _exotel.aclose()
        _exotel = None
