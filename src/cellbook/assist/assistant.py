"""AI assistance for notebook cells: generate, analyze, fix."""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from cellbook.assist import prompts
from cellbook.exceptions import AnalysisError, AssistError, FixError, GenerationError
from cellbook.llm import ImageInput, LLMClient
from cellbook.observability import Timer, emit_counter, emit_timer, get_logger
from cellbook.sandbox.normalizer import NormalizedResult, normalize

logger = get_logger(__name__)

# First fenced block, any (or no) language tag
FENCED_BLOCK_PATTERN = re.compile(r"```[\w+-]*[^\S\n]*\n(.*?)\n?```", re.DOTALL)
# Whole block on one line: ```print(1)```
ONE_LINE_FENCE_PATTERN = re.compile(r"```([^`\n]+)```")


def extract_code(text: str) -> str:
    """Interior of the first fenced code block, else the whole response, trimmed.

    A fence opened and closed on the same line counts as a block; its
    content is taken whole, with no language tag stripped.
    """
    matches = [
        match
        for match in (FENCED_BLOCK_PATTERN.search(text), ONE_LINE_FENCE_PATTERN.search(text))
        if match
    ]
    if matches:
        first = min(matches, key=lambda match: match.start())
        return first.group(1).strip()
    return text.strip()


def collect_images(
    results: Sequence[NormalizedResult],
) -> tuple[list[ImageInput], list[str]]:
    """Split result images into model image inputs and SVG markup.

    PNG and JPEG payloads are already base64. SVG is not an accepted
    image type, so its markup is returned for inlining as text.
    """
    images: list[ImageInput] = []
    svgs: list[str] = []
    for result in results:
        if result.png:
            images.append(ImageInput(media_type="image/png", data=result.png))
        if result.svg:
            svgs.append(result.svg)
        if result.jpeg:
            images.append(ImageInput(media_type="image/jpeg", data=result.jpeg))
    return images, svgs


def _as_result(result: NormalizedResult | Mapping[str, Any]) -> NormalizedResult:
    if isinstance(result, NormalizedResult):
        return result
    return normalize(result)


class CodeAssistant:
    """Code generation, output analysis and error fixing on top of an LLM.

    Each method raises its own AssistError subclass; none retries.
    """

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def _complete(
        self,
        error_cls: type[AssistError],
        action: str,
        prompt: str,
        system_prompt: str | None = None,
        images: Sequence[ImageInput] | None = None,
    ) -> str:
        with Timer() as timer:
            try:
                text = await self.llm.complete(
                    prompt,
                    system_prompt=system_prompt,
                    images=images,
                )
            except Exception as e:
                logger.error(f"{action} failed", error=e)
                emit_counter(f"assist.{action}.failed")
                raise error_cls(str(e) or f"{action} failed") from e

        if not text or not text.strip():
            emit_counter(f"assist.{action}.failed")
            raise error_cls(f"{action} returned an empty response")

        logger.info(
            f"{action} completed",
            context={"prompt_length": len(prompt), "image_count": len(images or [])},
            duration_ms=timer.duration_ms,
        )
        emit_timer(f"assist.{action}.duration", timer.duration_ms)
        return text

    async def generate_code(self, prompt: str) -> str:
        """Python code for a natural-language request.

        Raises:
            GenerationError: If the model call failed or returned nothing usable
        """
        text = await self._complete(
            GenerationError,
            "generate",
            prompt,
            system_prompt=prompts.CODE_GENERATOR_SYSTEM,
        )
        return self._code_or_raise(text, GenerationError)

    async def generate_code_with_files(self, prompt: str, file_names: Sequence[str]) -> str:
        """Python code for a request over files already staged in the sandbox.

        Raises:
            GenerationError: If the model call failed or returned nothing usable
        """
        text = await self._complete(
            GenerationError,
            "generate",
            prompts.format_file_prompt(prompt, list(file_names)),
            system_prompt=prompts.FILE_CODE_GENERATOR_SYSTEM,
        )
        return self._code_or_raise(text, GenerationError)

    async def analyze_output(
        self,
        output: str,
        results: Sequence[NormalizedResult | Mapping[str, Any]] | None = None,
    ) -> str:
        """Short analysis of a cell's output, with its figures attached.

        Raises:
            AnalysisError: If the model call failed or returned nothing
        """
        normalized = [_as_result(result) for result in results or []]
        images, svgs = collect_images(normalized)

        prompt = prompts.ANALYZE_PROMPT_TEMPLATE.format(output=output)
        for index, svg in enumerate(svgs, start=1):
            prompt += prompts.SVG_ATTACHMENT_TEMPLATE.format(index=index, svg=svg)

        text = await self._complete(
            AnalysisError,
            "analyze",
            prompt,
            system_prompt=prompts.ANALYST_SYSTEM,
            images=images,
        )
        return text.strip()

    async def fix_code(self, code: str, error: str) -> str:
        """Corrected version of code that raised error.

        Raises:
            FixError: If the model call failed or returned nothing usable
        """
        text = await self._complete(
            FixError,
            "fix",
            prompts.FIX_PROMPT_TEMPLATE.format(code=code, error=error),
            system_prompt=prompts.DEBUGGER_SYSTEM,
        )
        return self._code_or_raise(text, FixError)

    @staticmethod
    def _code_or_raise(text: str, error_cls: type[AssistError]) -> str:
        code = extract_code(text)
        if not code:
            raise error_cls("Model response contained no code")
        return code
