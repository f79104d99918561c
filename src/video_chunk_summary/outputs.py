from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

SUMMARY_SUFFIX = "_output.txt"
AUDIO_SUFFIX = "_audio_output.txt"
SCREEN_SUFFIX = "_video_output.txt"


@dataclass(frozen=True)
class OutputPaths:
    summary: Path
    audio: Path
    screen: Path

    def all(self) -> tuple[Path, Path, Path]:
        return (self.summary, self.audio, self.screen)


def output_paths(base_name: str, directory: Path | str) -> OutputPaths:
    target = Path(directory)
    return OutputPaths(
        summary=target / f"{base_name}{SUMMARY_SUFFIX}",
        audio=target / f"{base_name}{AUDIO_SUFFIX}",
        screen=target / f"{base_name}{SCREEN_SUFFIX}",
    )


def format_chunk_entry(video_index: int, chunk_num: int, text: str) -> str:
    body = text.rstrip("\n")
    return f"Video Index: {video_index}, Chunk: {chunk_num}\n{body}\n\n"


def completion_marker(video_index: int) -> str:
    return f"\n--- VIDEO {video_index} PROCESSING COMPLETE ---\n\n"


def organize_outputs(directory: Path | str, base_names: Iterable[str]) -> list[Path]:
    """Move each video's output files into a folder named after its base name."""

    source_dir = Path(directory)
    moved: list[Path] = []
    for base_name in base_names:
        paths = output_paths(base_name, source_dir)
        existing = [path for path in paths.all() if path.is_file()]
        if not existing:
            continue
        folder = source_dir / base_name
        folder.mkdir(parents=True, exist_ok=True)
        for path in existing:
            destination = folder / path.name
            shutil.move(str(path), str(destination))
            logger.info("Moved %s to %s/", path.name, folder)
            moved.append(destination)
    return moved
