import os
import sys
from datetime import datetime
from datetime import timezone

import pytest

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PIPELINE_DIR = os.path.join(REPO_ROOT, "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

import unreleased_commits
from unrellib import github_client
from unrellib import snapshot
from unrellib import snapshot_store


#============================================
@pytest.mark.parametrize("argv", [
	[],
	["--crawl", "--generate"],
	["--crawl", "--owner", "acme", "--limit", "-1"],
	["--crawl", "--owner", "acme", "--workers", "0"],
	["--generate", "--owner", "acme"],
])
def test_invalid_mode_arguments_exit_with_usage_error(argv) -> None:
	"""
	Neither or both modes, and bad numeric flags, are usage errors.
	"""
	with pytest.raises(SystemExit) as excinfo:
		unreleased_commits.parse_args(argv)
	assert excinfo.value.code == 2


#============================================
def test_parse_args_crawl_mode() -> None:
	args = unreleased_commits.parse_args(["--crawl", "--owner", "acme", "--limit", "5"])
	assert args.crawl
	assert not args.generate
	assert args.owner == "acme"
	assert args.limit == 5


#============================================
def test_crawl_without_token_fails_before_network(tmp_path, monkeypatch) -> None:
	"""
	A missing GITHUB_TOKEN stops the crawl before a client is built.
	"""
	monkeypatch.delenv("GITHUB_TOKEN", raising=False)

	def unexpected_client(*args, **kwargs):
		raise AssertionError("client must not be built without a token")

	monkeypatch.setattr(github_client, "GitHubClient", unexpected_client)
	with pytest.raises(RuntimeError, match="GITHUB_TOKEN"):
		unreleased_commits.main([
			"--crawl",
			"--owner", "acme",
			"--settings", str(tmp_path / "missing.yaml"),
			"--data-dir", str(tmp_path / "data"),
		])


#============================================
def test_crawl_without_owner_fails(tmp_path, monkeypatch) -> None:
	monkeypatch.setenv("GITHUB_TOKEN", "ghp_example")
	with pytest.raises(RuntimeError, match="Owner is required"):
		unreleased_commits.main([
			"--crawl",
			"--settings", str(tmp_path / "missing.yaml"),
		])


#============================================
def test_generate_without_snapshots_fails(tmp_path, monkeypatch) -> None:
	monkeypatch.delenv("TEMPLATE_PATH", raising=False)
	(tmp_path / "data").mkdir()
	with pytest.raises(RuntimeError, match="Run with --crawl first"):
		unreleased_commits.main([
			"--generate",
			"--settings", str(tmp_path / "missing.yaml"),
			"--data-dir", str(tmp_path / "data"),
			"--output-dir", str(tmp_path / "output"),
		])


#============================================
def test_generate_renders_persisted_snapshots(tmp_path, monkeypatch) -> None:
	monkeypatch.delenv("TEMPLATE_PATH", raising=False)
	data_dir = tmp_path / "data"
	repo_snapshot = snapshot.RepositorySnapshot(
		owner="acme",
		name="alpha",
		default_branch="main",
		latest_release_tag="v1.0.0",
		latest_release_time=datetime(2026, 3, 1, tzinfo=timezone.utc),
		unreleased_commits=(),
		repository_url="https://github.com/acme/alpha",
	)
	snapshot_store.write_snapshot(str(data_dir), repo_snapshot)
	output_dir = tmp_path / "output"
	unreleased_commits.main([
		"--generate",
		"--settings", str(tmp_path / "missing.yaml"),
		"--data-dir", str(data_dir),
		"--output-dir", str(output_dir),
	])
	assert (output_dir / "index.html").is_file()
	assert (output_dir / "alpha.html").is_file()
	assert (output_dir / "style.css").is_file()
	assert "Last updated: unknown" in (output_dir / "index.html").read_text(encoding="utf-8")


#============================================
def test_generate_with_corrupt_timestamp_still_renders(tmp_path, monkeypatch) -> None:
	"""
	An unreadable crawl timestamp is a warning; the footer shows unknown.
	"""
	monkeypatch.delenv("TEMPLATE_PATH", raising=False)
	data_dir = tmp_path / "data"
	repo_snapshot = snapshot.RepositorySnapshot(
		owner="acme",
		name="alpha",
		default_branch="main",
		latest_release_tag="v1.0.0",
		latest_release_time=datetime(2026, 3, 1, tzinfo=timezone.utc),
		unreleased_commits=(),
		repository_url="https://github.com/acme/alpha",
	)
	snapshot_store.write_snapshot(str(data_dir), repo_snapshot)
	(data_dir / "timestamp.json").write_text("{not json", encoding="utf-8")
	messages = []
	monkeypatch.setattr(unreleased_commits, "log_step", messages.append)
	output_dir = tmp_path / "output"
	unreleased_commits.main([
		"--generate",
		"--settings", str(tmp_path / "missing.yaml"),
		"--data-dir", str(data_dir),
		"--output-dir", str(output_dir),
	])
	index_html = (output_dir / "index.html").read_text(encoding="utf-8")
	assert "Last updated: unknown" in index_html
	assert any(message.startswith("Warning: could not load crawl timestamp") for message in messages)
