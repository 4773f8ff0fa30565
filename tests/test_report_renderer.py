import os
import sys
from datetime import datetime
from datetime import timezone

import pytest

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PIPELINE_DIR = os.path.join(REPO_ROOT, "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from unrellib import report_renderer
from unrellib import snapshot


NOW = datetime(2026, 3, 21, tzinfo=timezone.utc)


#============================================
def make_snapshot(name: str, messages: list[str]) -> snapshot.RepositorySnapshot:
	commits = tuple(
		snapshot.CommitRecord(
			sha=f"{index:07d}abcdef",
			author="alice",
			message=message,
			timestamp=datetime(2026, 3, 10, tzinfo=timezone.utc),
			url=f"https://github.com/acme/{name}/commit/{index}",
		)
		for index, message in enumerate(messages)
	)
	return snapshot.RepositorySnapshot(
		owner="acme",
		name=name,
		default_branch="main",
		latest_release_tag="v3.0.0",
		latest_release_time=datetime(2026, 3, 1, tzinfo=timezone.utc),
		unreleased_commits=commits,
		repository_url=f"https://github.com/acme/{name}",
	)


#============================================
def test_resolve_template_source_defaults_to_bundled() -> None:
	source = report_renderer.resolve_template_source("")
	assert source.bundled
	for filename in ["index.html", "repo.html", "style.css"]:
		assert os.path.isfile(os.path.join(source.directory, filename))


#============================================
def test_resolve_template_source_missing_override_raises(tmp_path) -> None:
	with pytest.raises(RuntimeError, match="Template directory not found"):
		report_renderer.resolve_template_source(str(tmp_path / "nope"))


#============================================
def test_generate_report_writes_all_pages(tmp_path) -> None:
	"""
	Report should contain the index, one page per repo, and the stylesheet.
	"""
	renderer = report_renderer.ReportRenderer(report_renderer.resolve_template_source(""))
	snapshots = [
		make_snapshot("alpha", ["Fix <script> escaping\n\nbody text", ""]),
		make_snapshot("beta", []),
	]
	output_dir = tmp_path / "output"
	written = renderer.generate_report(
		snapshots,
		str(output_dir),
		datetime(2026, 3, 20, 6, 30, tzinfo=timezone.utc),
		NOW,
	)
	assert sorted(os.path.basename(path) for path in written) == [
		"alpha.html",
		"beta.html",
		"index.html",
		"style.css",
	]
	index_html = (output_dir / "index.html").read_text(encoding="utf-8")
	assert 'href="alpha.html"' in index_html
	assert "Last updated March 20, 2026 06:30 UTC" in index_html
	assert "for acme" in index_html

	alpha_html = (output_dir / "alpha.html").read_text(encoding="utf-8")
	assert "Fix &lt;script&gt; escaping" in alpha_html
	assert "<script>" not in alpha_html
	assert "0000000" in alpha_html
	beta_html = (output_dir / "beta.html").read_text(encoding="utf-8")
	assert "No unreleased commits since v3.0.0" in beta_html


#============================================
def test_generate_report_unknown_timestamp(tmp_path) -> None:
	renderer = report_renderer.ReportRenderer(report_renderer.resolve_template_source(""))
	renderer.generate_report([make_snapshot("alpha", [])], str(tmp_path), None, NOW)
	index_html = (tmp_path / "index.html").read_text(encoding="utf-8")
	assert "Last updated: unknown" in index_html


#============================================
def test_override_templates_are_used(tmp_path) -> None:
	"""
	An override directory replaces the bundled templates entirely.
	"""
	template_dir = tmp_path / "templates"
	template_dir.mkdir()
	(template_dir / "index.html").write_text("repos={{ total_repos }}", encoding="utf-8")
	(template_dir / "repo.html").write_text("{{ repo.name }}:{{ commit_count }}", encoding="utf-8")
	(template_dir / "style.css").write_text("body {}", encoding="utf-8")
	source = report_renderer.resolve_template_source(str(template_dir))
	assert not source.bundled
	renderer = report_renderer.ReportRenderer(source)
	output_dir = tmp_path / "output"
	renderer.generate_report([make_snapshot("alpha", ["one"])], str(output_dir), None, NOW)
	assert (output_dir / "index.html").read_text(encoding="utf-8") == "repos=1"
	assert (output_dir / "alpha.html").read_text(encoding="utf-8") == "alpha:1"
	assert (output_dir / "style.css").read_text(encoding="utf-8") == "body {}"


#============================================
def test_broken_repo_page_is_logged_and_skipped(tmp_path) -> None:
	template_dir = tmp_path / "templates"
	template_dir.mkdir()
	(template_dir / "index.html").write_text("ok", encoding="utf-8")
	(template_dir / "repo.html").write_text("{{ missing_value }}", encoding="utf-8")
	(template_dir / "style.css").write_text("", encoding="utf-8")
	messages = []
	renderer = report_renderer.ReportRenderer(
		report_renderer.resolve_template_source(str(template_dir)),
		log_fn=messages.append,
	)
	output_dir = tmp_path / "output"
	written = renderer.generate_report([make_snapshot("alpha", [])], str(output_dir), None, NOW)
	assert not (output_dir / "alpha.html").exists()
	assert sorted(os.path.basename(path) for path in written) == ["index.html", "style.css"]
	assert messages and messages[0].startswith("Error generating page for alpha")
