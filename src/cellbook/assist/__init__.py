"""AI assistance for notebook cells."""

from cellbook.assist.assistant import CodeAssistant, collect_images, extract_code

__all__ = [
    "CodeAssistant",
    "collect_images",
    "extract_code",
]
