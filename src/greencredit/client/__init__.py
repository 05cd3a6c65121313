from .openai_client import get_openai_client
