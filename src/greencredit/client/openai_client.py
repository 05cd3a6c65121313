from openai import AsyncOpenAI

from greencredit.config.settings import settings


def get_openai_client(model: str = settings.ORACLE_MODEL) -> AsyncOpenAI:
    if model not in settings.ORACLE_MODELS:
        raise ValueError(f"Invalid model: {model}")
    return AsyncOpenAI(
        api_key=settings.ORACLE_API_KEY,
        base_url=settings.ORACLE_BASE_URL,
        timeout=settings.ORACLE_TIMEOUT_SECONDS,
        max_retries=settings.ORACLE_MAX_RETRIES,
    )
