from enum import StrEnum


class GeminiModels(StrEnum):
    GEMINI_25_FLASH = "models/gemini-2.5-flash"
    GEMINI_25_FLASH_LITE = "models/gemini-2.5-flash-lite"
    GEMINI_FLASH_LATEST = "models/gemini-flash-latest"
    GEMINI_25_PRO = "models/gemini-2.5-pro"
    GEMINI_3_FLASH_PREVIEW = "models/gemini-3-flash-preview"


DEFAULT_MODEL = GeminiModels.GEMINI_3_FLASH_PREVIEW


def resolve_model(model_name: str | None) -> GeminiModels:
    """
    Resolve a model name to a known Gemini model.

    Accepts names with or without the "models/" prefix, case-insensitively.

    Args:
        model_name: The model name to look up.

    Returns:
        GeminiModels enum value, or the default model when the name is unknown.
    """
    if not model_name:
        return DEFAULT_MODEL

    wanted = model_name.strip().lower().removeprefix("models/")
    for model in GeminiModels:
        if model.value.lower().removeprefix("models/") == wanted:
            return model

    return DEFAULT_MODEL
