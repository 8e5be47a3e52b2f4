# manga_studio/lib/openai_client.py
from typing import Optional
from openai import OpenAI

def make_client(api_key: str, *, timeout: Optional[float] = 120.0) -> OpenAI:
    # max_retries=0: the variation generator owns the retry policy
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
