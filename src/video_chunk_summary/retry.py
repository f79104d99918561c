from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence, TextIO

from .errors import PromptError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 15.0


class GenerativeClient(Protocol):
    def generate(self, parts: Sequence[dict[str, Any]]) -> list[str]: ...


@dataclass(frozen=True)
class PromptResult:
    """Outcome of a retry-governed prompt.

    ``exhausted`` is set only when every attempt failed; a successful response
    with no text has ``exhausted=False`` and an empty ``text``.
    """

    text: str
    attempts: int
    exhausted: bool = False

    @property
    def ok(self) -> bool:
        return not self.exhausted


def send_prompt(
    client: GenerativeClient,
    parts: Sequence[dict[str, Any]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    sink: TextIO | None = None,
    label: str = "prompt",
    sleep: Callable[[float], None] = time.sleep,
) -> PromptResult:
    """Call ``client.generate`` up to ``max_retries + 1`` times.

    On success every text part is written to ``sink`` (one per line) as it is
    collected and the joined text is returned. Exhausting all attempts returns
    an empty, ``exhausted`` result instead of raising.
    """

    if max_retries < 0:
        raise ValueError("max_retries must not be negative")

    total = max_retries + 1
    for attempt in range(1, total + 1):
        logger.info("Sending %s to LLM, attempt %d...", label, attempt)
        started = time.monotonic()
        try:
            texts = client.generate(parts)
        except PromptError as exc:
            logger.warning("Error generating content for %s (attempt %d): %s", label, attempt, exc)
            if attempt < total:
                logger.info("Retrying in %.0fs...", retry_delay)
                sleep(retry_delay)
            continue

        logger.info("LLM response received for %s in %.1fs", label, time.monotonic() - started)
        if sink is not None:
            for text in texts:
                try:
                    sink.write(text + "\n")
                    sink.flush()
                except OSError as exc:
                    logger.error("Error writing %s response to file: %s", label, exc)
        return PromptResult(text="".join(texts), attempts=attempt)

    logger.error("Max retries reached for %s. Aborting LLM call.", label)
    return PromptResult(text="", attempts=total, exhausted=True)
