"""Render persisted snapshots as a static HTML report.

Templates come from a TemplateSource that is resolved once at startup:
either the set bundled next to this module or an override directory.
"""

# Standard Library
import os
import shutil
from dataclasses import dataclass
from datetime import datetime

import jinja2

# local repo modules
from unrellib import report_metrics
from unrellib import snapshot

BUNDLED_TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
INDEX_TEMPLATE = "index.html"
REPO_TEMPLATE = "repo.html"
STYLESHEET = "style.css"


#============================================
@dataclass(frozen=True)
class TemplateSource:
	directory: str
	bundled: bool


#============================================
def resolve_template_source(override_dir: str = "") -> TemplateSource:
	"""
	Pick the template directory: override when given, bundled otherwise.
	"""
	override_value = (override_dir or "").strip()
	if not override_value:
		return TemplateSource(directory=BUNDLED_TEMPLATE_DIR, bundled=True)
	directory = os.path.abspath(override_value)
	if not os.path.isdir(directory):
		raise RuntimeError(f"Template directory not found: {directory}")
	return TemplateSource(directory=directory, bundled=False)


#============================================
class ReportRenderer:
	"""
	Jinja2 renderer bound to one TemplateSource.
	"""

	def __init__(self, template_source: TemplateSource, log_fn=None):
		self.template_source = template_source
		self.log_fn = log_fn
		self.env = jinja2.Environment(
			loader=jinja2.FileSystemLoader(template_source.directory),
			autoescape=jinja2.select_autoescape(["html", "xml"]),
			undefined=jinja2.StrictUndefined,
			trim_blocks=True,
			lstrip_blocks=True,
		)

	#============================================
	def log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def render_index(self, summary: dict, last_updated: str) -> str:
		template = self.env.get_template(INDEX_TEMPLATE)
		return template.render(last_updated=last_updated, **summary)

	#============================================
	def render_repo_page(self, repo_context: dict, last_updated: str) -> str:
		template = self.env.get_template(REPO_TEMPLATE)
		return template.render(last_updated=last_updated, **repo_context)

	#============================================
	def copy_stylesheet(self, output_dir: str) -> str:
		source_path = os.path.join(self.template_source.directory, STYLESHEET)
		target_path = os.path.join(output_dir, STYLESHEET)
		shutil.copyfile(source_path, target_path)
		return target_path

	#============================================
	def generate_report(
		self,
		snapshots: list[snapshot.RepositorySnapshot],
		output_dir: str,
		last_crawled: datetime | None,
		now: datetime,
	) -> list[str]:
		"""
		Write index.html, one page per repository, and style.css.

		A failed repository page is logged and skipped; index and
		stylesheet failures propagate.

		Returns:
			Paths of the files written.
		"""
		os.makedirs(output_dir, exist_ok=True)
		last_updated = report_metrics.format_footer_timestamp(last_crawled)
		written = []

		summary = report_metrics.build_index_summary(snapshots, now)
		index_path = os.path.join(output_dir, INDEX_TEMPLATE)
		write_text(index_path, self.render_index(summary, last_updated))
		written.append(index_path)

		for repo_snapshot in snapshots:
			page_path = os.path.join(output_dir, report_metrics.repo_page_name(repo_snapshot.name))
			try:
				html = self.render_repo_page(
					report_metrics.build_repo_context(repo_snapshot, now),
					last_updated,
				)
				write_text(page_path, html)
			except (jinja2.TemplateError, OSError) as error:
				self.log(f"Error generating page for {repo_snapshot.name}: {error}")
				continue
			written.append(page_path)

		written.append(self.copy_stylesheet(output_dir))
		return written


#============================================
def write_text(path: str, text: str) -> None:
	with open(path, "w", encoding="utf-8") as handle:
		handle.write(text)
