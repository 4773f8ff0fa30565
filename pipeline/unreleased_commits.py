#!/usr/bin/env python3
import argparse
import os
from datetime import datetime

import rich.console

from unrellib import crawler
from unrellib import github_client
from unrellib import pipeline_settings
from unrellib import report_renderer
from unrellib import snapshot
from unrellib import snapshot_store


DEFAULT_DATA_DIR = "data"
DEFAULT_OUTPUT_DIR = "output"
RICH_CONSOLE = rich.console.Console()


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[unreleased_commits {now_text}] {message}"
	lower = message.lower()
	style = "cyan"
	if ("complete" in lower) or ("generated" in lower) or ("processed" in lower):
		style = "green"
	elif ("failed" in lower) or ("error" in lower):
		style = "bold red"
	elif ("warning" in lower) or ("skipping" in lower) or ("rate limit" in lower):
		style = "yellow"
	elif "wrote " in lower:
		style = "green"
	# markup=False keeps commit messages and repo names with brackets literal
	RICH_CONSOLE.print(line, style=style, markup=False, highlight=False)


#============================================
def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		description=(
			"List commits made since each repository's latest release across a "
			"GitHub organization, and render them as a static HTML report."
		)
	)
	mode_group = parser.add_mutually_exclusive_group(required=True)
	mode_group.add_argument(
		"--crawl",
		action="store_true",
		help="Crawl the GitHub API and write one JSON snapshot per repository.",
	)
	mode_group.add_argument(
		"--generate",
		action="store_true",
		help="Generate HTML pages from previously written JSON snapshots.",
	)
	parser.add_argument(
		"--owner",
		default="",
		help="GitHub organization to crawl (falls back to settings.yaml github.owner).",
	)
	parser.add_argument(
		"--limit",
		type=int,
		default=0,
		help="Optional cap for repositories processed (0 means no cap).",
	)
	parser.add_argument(
		"--workers",
		type=int,
		default=None,
		help="Repositories processed concurrently (falls back to settings.yaml crawl.workers).",
	)
	parser.add_argument(
		"--settings",
		default="settings.yaml",
		help="YAML settings path for defaults.",
	)
	parser.add_argument(
		"--data-dir",
		default=None,
		help="Directory holding JSON snapshots (default: data).",
	)
	parser.add_argument(
		"--output-dir",
		default=None,
		help="Directory for generated HTML (default: output).",
	)
	return parser


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command-line arguments and reject invalid mode combinations.
	"""
	parser = build_parser()
	args = parser.parse_args(argv)
	if args.limit < 0:
		parser.error("--limit must be 0 or a positive number of repositories")
	if (args.workers is not None) and (args.workers < 1):
		parser.error("--workers must be at least 1")
	if args.generate and args.owner:
		parser.error("--owner is only used with --crawl")
	return args


#============================================
def resolve_dir(cli_value: str | None, settings: dict, key: str, default_value: str) -> str:
	if cli_value:
		return cli_value
	return pipeline_settings.get_setting_str(settings, ["paths", key], default_value) or default_value


#============================================
def run_crawl_mode(args: argparse.Namespace, settings: dict) -> crawler.CrawlOutcome:
	"""
	Crawl the organization and write snapshots plus the crawl timestamp.
	"""
	owner = args.owner.strip() or pipeline_settings.get_github_owner(settings)
	if not owner:
		raise RuntimeError(
			"Owner is required when using --crawl. Use --owner or set github.owner in settings.yaml."
		)
	token = pipeline_settings.get_github_token()
	page_size = pipeline_settings.get_page_size(settings)
	workers = args.workers or pipeline_settings.get_crawl_workers(settings)
	data_dir = resolve_dir(args.data_dir, settings, "data_dir", DEFAULT_DATA_DIR)
	log_step(f"Using GitHub organization: {owner}")
	log_step(f"Writing snapshots to: {os.path.abspath(data_dir)}")
	client = github_client.GitHubClient(token, log_fn=log_step, page_size=page_size)
	outcome = crawler.run_crawl(
		client,
		owner,
		args.limit,
		data_dir,
		workers=workers,
		log_fn=log_step,
	)
	for repo_outcome in outcome.outcomes:
		if repo_outcome.status == crawler.STATUS_FAILED:
			log_step(f"Failed: {repo_outcome.name}: {repo_outcome.reason}")
	usage = client.api_usage_snapshot()
	log_step(f"GitHub API usage: calls={usage.get('api_call_count', 0)}")
	log_step(
		f"Processed {outcome.processed} repositories with releases "
		+ f"(skipped {outcome.skipped}, failed {outcome.failed})."
	)
	return outcome


#============================================
def run_generate_mode(args: argparse.Namespace, settings: dict) -> list[str]:
	"""
	Render every persisted snapshot into the output directory.
	"""
	data_dir = resolve_dir(args.data_dir, settings, "data_dir", DEFAULT_DATA_DIR)
	output_dir = resolve_dir(args.output_dir, settings, "output_dir", DEFAULT_OUTPUT_DIR)
	template_source = report_renderer.resolve_template_source(
		pipeline_settings.get_template_path(settings)
	)
	if not template_source.bundled:
		log_step(f"Loading templates from disk: {template_source.directory}")
	log_step("Generating HTML pages...")
	snapshots = snapshot_store.load_snapshots(data_dir)
	if not snapshots:
		raise RuntimeError(
			f"No repository JSON files found in {data_dir}. Run with --crawl first."
		)
	try:
		last_crawled = snapshot_store.load_crawl_timestamp(data_dir)
	except (snapshot.SnapshotSchemaError, OSError) as error:
		log_step(f"Warning: could not load crawl timestamp: {error}")
		last_crawled = None
	else:
		if last_crawled is None:
			log_step("Warning: no crawl timestamp found; footer will show unknown.")
	renderer = report_renderer.ReportRenderer(template_source, log_fn=log_step)
	written = renderer.generate_report(
		snapshots,
		output_dir,
		last_crawled,
		crawler.utc_now(),
	)
	log_step(f"Generated {len(written)} file(s) in {os.path.abspath(output_dir)}")
	log_step(f"Open {os.path.join(output_dir, 'index.html')} in your browser")
	return written


#============================================
def main(argv: list[str] | None = None) -> None:
	"""
	Run the crawl or generate phase.
	"""
	args = parse_args(argv)
	settings, settings_path = pipeline_settings.load_settings(args.settings)
	log_step(f"Using settings file: {settings_path}")
	if args.crawl:
		run_crawl_mode(args, settings)
	else:
		run_generate_mode(args, settings)


if __name__ == "__main__":
	main()
