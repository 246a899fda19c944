from genzoom.tools.image import ImageClient
from genzoom.tools.search import SearchClient
from genzoom.tools.text_generation import TextGenerationClient, build_chat_model
from genzoom.tools.zoom import ZoomClient

__all__ = [
    "ImageClient",
    "SearchClient",
    "TextGenerationClient",
    "ZoomClient",
    "build_chat_model",
]
