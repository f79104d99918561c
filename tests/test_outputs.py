from __future__ import annotations

from pathlib import Path

from video_chunk_summary.outputs import completion_marker, format_chunk_entry, organize_outputs, output_paths


def test_output_paths_follow_base_name(tmp_path: Path) -> None:
    paths = output_paths("lecture01", tmp_path)

    assert paths.summary == tmp_path / "lecture01_output.txt"
    assert paths.audio == tmp_path / "lecture01_audio_output.txt"
    assert paths.screen == tmp_path / "lecture01_video_output.txt"


def test_format_chunk_entry_has_header_text_and_blank_line() -> None:
    assert format_chunk_entry(1, 0, "hello\n") == "Video Index: 1, Chunk: 0\nhello\n\n"
    assert format_chunk_entry(2, 5, "") == "Video Index: 2, Chunk: 5\n\n\n"


def test_completion_marker() -> None:
    assert completion_marker(4) == "\n--- VIDEO 4 PROCESSING COMPLETE ---\n\n"


def test_organize_outputs_moves_files_into_folders(tmp_path: Path) -> None:
    for name in ("MM01_output.txt", "MM01_audio_output.txt", "MM01_video_output.txt", "MM02_output.txt"):
        (tmp_path / name).write_text(name)
    (tmp_path / "unrelated.txt").write_text("stay")

    moved = organize_outputs(tmp_path, ["MM01", "MM02", "MM03"])

    assert sorted(path.relative_to(tmp_path).as_posix() for path in moved) == [
        "MM01/MM01_audio_output.txt",
        "MM01/MM01_output.txt",
        "MM01/MM01_video_output.txt",
        "MM02/MM02_output.txt",
    ]
    assert (tmp_path / "MM01" / "MM01_output.txt").read_text() == "MM01_output.txt"
    assert (tmp_path / "unrelated.txt").exists()
    assert not (tmp_path / "MM03").exists()
