from .api_registry import (
    CustomApiRegistry, ApiRegistryError, register_custom_api, get_custom_api,
    unregister_custom_apis, clear_custom_apis,
)
from .gemini_image import GeminiImageTool, ImageToolError, get_gemini_image_tools
