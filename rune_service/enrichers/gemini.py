"""Gemini proxy for natural-language rune questions."""

from typing import Optional

import httpx
from rich.console import Console

from rune_service.errors import ConfigurationError, InvalidRequestError, NetworkError
from rune_service.models import RecordSet

console = Console()

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

# Grades worth priming the model with
PRIMED_GRADES = ("신화", "전설")
MAX_PRIMED_RUNES = 50

NO_ANSWER = "응답이 없어요."

PROMPT_TEMPLATE = """너는 '여정&동행 봇'이야. 마비노기 모바일 정보를 친근하게 알려줘.
룬에 관해 물으면 이름/분류/등급/효과를 정확히 설명해.
아래는 신화/전설 일부 목록이야(있으면 참고만 해):
{runes}

답변은 100자 이내로 자연스럽게. 가끔 어미에 '뇽'을 붙여도 돼.
질문: {question}"""


def summarize_top_runes(records: RecordSet, limit: int = MAX_PRIMED_RUNES) -> str:
    """Comma-separated "name(grade)" list of mythic/legendary runes."""
    top = [r for r in records if r.grade in PRIMED_GRADES][:limit]
    return ", ".join(f"{r.name}({r.grade})" for r in top)


def build_prompt(question: str, records: RecordSet) -> str:
    return PROMPT_TEMPLATE.format(
        runes=summarize_top_runes(records) or "(데이터 없음)",
        question=question,
    )


def extract_answer(data: dict) -> Optional[str]:
    """Pull candidates[0].content.parts[0].text out of a Gemini response."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text.strip() or None


async def ask_gemini(
    question: Optional[str],
    records: RecordSet,
    api_key: Optional[str],
    model: str = "gemini-2.5-flash",
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Answer a question with Gemini, primed with part of the rune list."""
    question = (question or "").strip()
    if not question:
        raise InvalidRequestError("question parameter required")
    if not api_key:
        raise ConfigurationError("GEMINI_API_KEY is not set", key="GEMINI_API_KEY")

    payload = {"contents": [{"parts": [{"text": build_prompt(question, records)}]}]}
    url = GEMINI_URL.format(model=model)

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, params={"key": api_key}, json=payload)
            response.raise_for_status()
    except httpx.TimeoutException:
        raise NetworkError(f"Gemini timed out after {timeout:g}s")
    except httpx.HTTPStatusError as e:
        console.print(f"[red]Gemini HTTP {e.response.status_code}[/red]")
        raise NetworkError(f"Gemini HTTP {e.response.status_code}", status=e.response.status_code)
    except httpx.RequestError as e:
        raise NetworkError(f"Gemini request failed: {type(e).__name__}")

    try:
        data = response.json()
    except ValueError:
        # 2xx with an HTML body, typically from a proxy in front of the API
        raise NetworkError("Gemini returned a non-JSON response", status=response.status_code)

    return extract_answer(data) or NO_ANSWER
