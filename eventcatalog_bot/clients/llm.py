"""Chat model construction for the configured provider."""

from langchain_core.language_models import BaseChatModel

from eventcatalog_bot.config.schema import AIConfig, AIProvider
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)

MAX_OUTPUT_TOKENS = 4096


def create_chat_model(config: AIConfig, api_key: str | None = None) -> BaseChatModel:
    """Create a LangChain chat model for the configured provider.

    Provider packages are imported lazily so only the selected one has to be
    importable at runtime.

    Args:
        config: AI section of the bot config
        api_key: Provider API key (falls back to the provider's own env lookup)

    Returns:
        Chat model supporting ``bind_tools``
    """
    model_id = config.model_id
    logger.info(f"Creating {config.provider} chat model {model_id} (temperature={config.temperature})")

    match config.provider:
        case AIProvider.ANTHROPIC:
            from langchain_anthropic import ChatAnthropic

            kwargs = {"api_key": api_key} if api_key else {}
            return ChatAnthropic(
                model=model_id,
                temperature=config.temperature,
                max_tokens=MAX_OUTPUT_TOKENS,
                **kwargs,
            )
        case AIProvider.OPENAI:
            from langchain_openai import ChatOpenAI

            kwargs = {"api_key": api_key} if api_key else {}
            return ChatOpenAI(model=model_id, temperature=config.temperature, **kwargs)
        case AIProvider.GOOGLE:
            from langchain_google_genai import ChatGoogleGenerativeAI

            kwargs = {"google_api_key": api_key} if api_key else {}
            return ChatGoogleGenerativeAI(model=model_id, temperature=config.temperature, **kwargs)

    raise ValueError(f"Unknown AI provider: {config.provider}")
