from design2code.integrations.figma_client import FigmaClient, extract_file_key
from design2code.integrations.gemini_client import GeminiClient

__all__ = ["FigmaClient", "GeminiClient", "extract_file_key"]
