import argparse
import logging
import sys
from pathlib import Path
from tempfile import TemporaryDirectory
from urllib.parse import urlparse

import yt_dlp
from video_chunk_summary import GeminiClient, PipelineConfig, RunContext, organize_outputs, process_batch
from video_chunk_summary.config import ConfigError
from video_chunk_summary.logging_utils import setup_logging

logger = logging.getLogger("process_video")


def parse_args() -> argparse.Namespace:
	parser = argparse.ArgumentParser(description="Chunk videos, transcribe audio and screen text, and summarize them.")
	parser.add_argument("input", help="Path to a video file, a folder of videos, or a video URL")
	parser.add_argument("--model", default="gemini-1.5-flash", help="Generative model used for screen text and summary")
	parser.add_argument("--api-key", dest="api_key", help="Gemini API key (defaults to GEMINI_API_KEY env var)")
	parser.add_argument(
		"--chunk-duration",
		dest="chunk_duration",
		type=int,
		default=60,
		help="Length of each chunk in seconds",
	)
	parser.add_argument("--whisper-cli", dest="whisper_cli", default="whisper-cli", help="Path to the whisper-cli binary")
	parser.add_argument("--whisper-model", dest="whisper_model", required=True, help="Path to the whisper model file")
	parser.add_argument(
		"--whisper-threads",
		dest="whisper_threads",
		type=int,
		default=4,
		help="Thread count passed to whisper-cli",
	)
	parser.add_argument(
		"--whisper-language",
		dest="whisper_language",
		default="",
		help="Language code passed to whisper-cli (empty lets it detect)",
	)
	parser.add_argument("--tesseract", dest="tesseract_cmd", default="tesseract", help="Tesseract binary used for OCR fallback")
	parser.add_argument(
		"--context-file",
		dest="context_file",
		help="Optional text file whose content is prefixed to the summary prompt",
	)
	parser.add_argument(
		"--output-dir",
		dest="output_dir",
		help="Write output files here instead of next to each video",
	)
	parser.add_argument("--max-retries", dest="max_retries", type=int, default=3, help="Retries for each LLM call")
	parser.add_argument(
		"--retry-delay",
		dest="retry_delay",
		type=float,
		default=15.0,
		help="Seconds to wait between LLM retries",
	)
	parser.add_argument(
		"--activation-delay",
		dest="activation_delay",
		type=float,
		default=30.0,
		help="Seconds to wait after uploading a chunk before prompting",
	)
	parser.add_argument("--log-file", dest="log_file", help="Also write logs to this file")
	parser.add_argument(
		"--organize-outputs",
		dest="organize_outputs",
		action="store_true",
		help="Move each video's output files into a folder named after the video",
	)
	return parser.parse_args()


def is_url(value: str) -> bool:
	parsed = urlparse(value)
	return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def download_video(video_url: str, output_dir: Path) -> Path:
	options = {
		"outtmpl": str(output_dir / "%(title).200s.%(ext)s"),
		"quiet": True,
		"no_warnings": True,
		"retries": 5,
	}
	with yt_dlp.YoutubeDL(options) as downloader:
		info = downloader.extract_info(video_url, download=True)
		filepath = downloader.prepare_filename(info)
	return Path(filepath)


def build_config(args: argparse.Namespace) -> PipelineConfig:
	context_text = ""
	if args.context_file:
		context_text = Path(args.context_file).read_text(encoding="utf-8")
	return PipelineConfig(
		chunk_duration=args.chunk_duration,
		model=args.model,
		api_key=args.api_key,
		whisper_cli=args.whisper_cli,
		whisper_model=args.whisper_model,
		whisper_threads=args.whisper_threads,
		whisper_language=args.whisper_language,
		tesseract_cmd=args.tesseract_cmd,
		max_retries=args.max_retries,
		retry_delay=args.retry_delay,
		activation_delay=args.activation_delay,
		context_text=context_text,
		output_dir=Path(args.output_dir) if args.output_dir else None,
	)


def run(input_path: Path, config: PipelineConfig, *, organize: bool) -> int:
	client = GeminiClient(api_key=config.resolve_api_key(), model=config.model)
	context = RunContext(config=config, client=client)
	batch = process_batch(input_path, context)

	if organize:
		by_directory: dict[Path, list[str]] = {}
		for video in batch.videos:
			if video.outputs is not None:
				by_directory.setdefault(video.outputs.summary.parent, []).append(video.video_path.stem)
		for directory, base_names in by_directory.items():
			organize_outputs(directory, base_names)

	print(f"Processed {len(batch.videos)} video(s) with {len(batch.errors)} error(s).")
	return 0


def main() -> int:
	args = parse_args()
	setup_logging(log_file=args.log_file)

	try:
		config = build_config(args)
	except (ConfigError, OSError) as exc:
		logger.error("Invalid configuration: %s", exc)
		return 1

	try:
		if is_url(args.input):
			with TemporaryDirectory() as tmpdir:
				downloaded_video = download_video(args.input, Path(tmpdir))
				if config.output_dir is None:
					config.output_dir = Path.cwd()
				return run(downloaded_video, config, organize=args.organize_outputs)
		return run(Path(args.input), config, organize=args.organize_outputs)
	except FileNotFoundError as exc:
		logger.error("Error accessing input path: %s", exc)
		return 1
	except RuntimeError as exc:
		logger.error("%s", exc)
		return 1


if __name__ == "__main__":
	sys.exit(main())
