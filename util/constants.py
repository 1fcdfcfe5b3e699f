class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    CONFIG = V1 + "/config"
    LLM = V1 + "/llm"
    BATCHES = V1 + "/batches"
    PROMPTS = V1 + "/prompts"
    PROMPT = PROMPTS + "/{name}"
    KEYS = V1 + "/keys"


class ExternalURIs:
    OPENAI_CHAT = "https://api.openai.com/v1/chat/completions"
    ANTHROPIC_MESSAGES = "https://api.anthropic.com/v1/messages"
    GEMINI_MODELS = "https://generativelanguage.googleapis.com/v1beta/models"
