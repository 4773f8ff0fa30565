"""Crawl an organization for commits made since each repository's latest release.

The client passed to these functions only needs the page-level methods of
unrellib.github_client.GitHubClient, so tests can drive them with in-memory
fakes.
"""

# Standard Library
import concurrent.futures
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone

# local repo modules
from unrellib import github_client
from unrellib import snapshot
from unrellib import snapshot_store

STATUS_PERSISTED = "persisted"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


#============================================
@dataclass(frozen=True)
class RepoOutcome:
	name: str
	status: str
	reason: str = ""
	commit_count: int = 0
	snapshot_path: str = ""


#============================================
@dataclass
class CrawlOutcome:
	organization: str
	outcomes: list[RepoOutcome] = field(default_factory=list)
	crawled_at: datetime | None = None
	timestamp_written: bool = False

	@property
	def enumerated(self) -> int:
		return len(self.outcomes)

	@property
	def processed(self) -> int:
		return self._count(STATUS_PERSISTED)

	@property
	def skipped(self) -> int:
		return self._count(STATUS_SKIPPED)

	@property
	def failed(self) -> int:
		return self._count(STATUS_FAILED)

	def _count(self, status: str) -> int:
		return sum(1 for outcome in self.outcomes if outcome.status == status)


#============================================
def utc_now() -> datetime:
	"""
	Return UTC now as a timezone-aware datetime.
	"""
	return datetime.now(timezone.utc)


#============================================
def _log(log_fn, message: str) -> None:
	if log_fn is not None:
		log_fn(message)


#============================================
def list_public_repositories(client, organization: str, limit: int, log_fn=None) -> list[snapshot.RepositoryRef]:
	"""
	List public repositories of an organization in source order.

	Args:
		client: object exposing get_org_repos_page(org, page).
		organization: organization login.
		limit: maximum repositories to return; 0 means no cap.

	Returns:
		RepositoryRef list, truncated to limit when limit > 0.
	"""
	if not organization or not organization.strip():
		raise ValueError("organization is required")
	if limit < 0:
		raise ValueError(f"limit must be >= 0; got {limit}")
	repos: list[snapshot.RepositoryRef] = []
	seen_names: set[str] = set()
	page = 1
	while True:
		items, has_next = client.get_org_repos_page(organization, page)
		for item in items:
			name = str(item.get("name") or "")
			if not name or name in seen_names:
				continue
			seen_names.add(name)
			repos.append(
				snapshot.RepositoryRef(
					owner=organization,
					name=name,
					html_url=str(item.get("html_url") or ""),
				)
			)
		_log(log_fn, f"Repository page {page}: {len(items)} item(s), {len(repos)} total.")
		if (limit > 0) and (len(repos) >= limit):
			return repos[:limit]
		if (not has_next) or (not items):
			break
		page += 1
	return repos


#============================================
def resolve_latest_release(client, organization: str, repository: str) -> snapshot.ReleaseRef | None:
	"""
	Return the latest published release, or None when the repo is not eligible.
	"""
	payload = client.get_latest_release(organization, repository)
	if not payload:
		return None
	if not isinstance(payload, dict):
		raise ValueError(f"latest release: expected an object, got {type(payload).__name__}")
	tag_name = str(payload.get("tag_name") or "").strip()
	if not tag_name:
		return None
	return snapshot.ReleaseRef(
		tag_name=tag_name,
		published_at=snapshot.parse_optional_timestamp(payload.get("published_at")),
	)


#============================================
def collect_unreleased_commits(
	client,
	organization: str,
	repository: str,
	base_ref: str,
	head_ref: str,
) -> list[snapshot.RawCommit]:
	"""
	Collect commits on head_ref that are not reachable from base_ref.

	Pages are requested until one comes back short or without a next link.
	Order is the compare API's oldest-first order across all pages.
	"""
	page_size = client.page_size
	commits: list[snapshot.RawCommit] = []
	seen_shas: set[str] = set()
	page = 1
	while True:
		items, has_next = client.get_compare_page(organization, repository, base_ref, head_ref, page)
		for item in items:
			raw = snapshot.raw_commit_from_payload(item)
			if raw.sha and raw.sha in seen_shas:
				continue
			seen_shas.add(raw.sha)
			commits.append(raw)
		if (not has_next) or (len(items) < page_size):
			break
		page += 1
	return commits


#============================================
def process_repository(client, repo_ref: snapshot.RepositoryRef, data_dir: str, log_fn=None) -> RepoOutcome:
	"""
	Run one repository through release check, compare, normalize and persist.

	Never raises for remote failures, malformed payloads or disk errors;
	those become a failed outcome.
	"""
	organization = repo_ref.owner
	name = repo_ref.name

	try:
		release = resolve_latest_release(client, organization, name)
	except (github_client.RemoteFetchError, ValueError) as error:
		_log(log_fn, f"{name}: error checking latest release: {error}")
		return RepoOutcome(name, STATUS_FAILED, f"latest release lookup: {error}")
	if release is None:
		_log(log_fn, f"{name}: skipping (no releases)")
		return RepoOutcome(name, STATUS_SKIPPED, "no releases")

	try:
		detail = client.get_repo(organization, name)
	except github_client.RemoteFetchError as error:
		_log(log_fn, f"{name}: error getting repo details: {error}")
		return RepoOutcome(name, STATUS_FAILED, f"repository detail: {error}")
	default_branch = str(detail.get("default_branch") or "")
	repository_url = str(detail.get("html_url") or repo_ref.html_url)
	if not default_branch:
		_log(log_fn, f"{name}: error getting repo details: no default branch reported")
		return RepoOutcome(name, STATUS_FAILED, "repository detail: no default branch reported")

	release_date = "unknown date"
	if release.published_at is not None:
		release_date = release.published_at.strftime("%Y-%m-%d")
	_log(log_fn, f"{name}: latest release {release.tag_name} ({release_date})")

	try:
		raw_commits = collect_unreleased_commits(
			client,
			organization,
			name,
			release.tag_name,
			default_branch,
		)
	except (github_client.RemoteFetchError, ValueError) as error:
		_log(log_fn, f"{name}: error comparing commits: {error}")
		return RepoOutcome(name, STATUS_FAILED, f"commit comparison: {error}")

	repo_snapshot = snapshot.normalize(
		repo_ref,
		default_branch,
		release,
		raw_commits,
		repository_url,
	)
	try:
		path = snapshot_store.write_snapshot(data_dir, repo_snapshot)
	except (OSError, ValueError) as error:
		_log(log_fn, f"{name}: error writing snapshot: {error}")
		return RepoOutcome(name, STATUS_FAILED, f"snapshot write: {error}")

	commit_count = len(repo_snapshot.unreleased_commits)
	_log(log_fn, f"{name}: wrote {commit_count} unreleased commit(s) to {path}")
	return RepoOutcome(name, STATUS_PERSISTED, "", commit_count, path)


#============================================
def run_crawl(
	client,
	organization: str,
	limit: int,
	data_dir: str,
	workers: int = 1,
	log_fn=None,
	now_fn=utc_now,
) -> CrawlOutcome:
	"""
	Crawl every public repository of an organization and persist snapshots.

	Enumeration errors propagate before any repository is attempted.
	Per-repository errors are recorded in the returned CrawlOutcome.
	The crawl timestamp is written once every repository has finished.
	"""
	if workers < 1:
		raise ValueError(f"workers must be >= 1; got {workers}")
	_log(log_fn, f"Fetching repositories for organization: {organization}")
	repos = list_public_repositories(client, organization, limit, log_fn=log_fn)
	_log(log_fn, f"Found {len(repos)} public repositories")

	result = CrawlOutcome(organization=organization)
	total = len(repos)
	if workers == 1 or total <= 1:
		for index, repo_ref in enumerate(repos, start=1):
			_log(log_fn, f"[{index}/{total}] Processing {repo_ref.name}")
			result.outcomes.append(process_repository(client, repo_ref, data_dir, log_fn=log_fn))
	else:
		_log(log_fn, f"Processing {total} repositories with {workers} workers")
		with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
			futures = [
				executor.submit(process_repository, client, repo_ref, data_dir, log_fn)
				for repo_ref in repos
			]
			# collect in enumeration order, not completion order
			for future in futures:
				result.outcomes.append(future.result())

	crawled_at = now_fn()
	result.crawled_at = crawled_at
	try:
		timestamp_path = snapshot_store.write_crawl_timestamp(data_dir, crawled_at)
	except OSError as error:
		_log(log_fn, f"Warning: failed to write crawl timestamp: {error}")
	else:
		result.timestamp_written = True
		_log(log_fn, f"Recorded crawl timestamp {crawled_at.isoformat()} in {timestamp_path}")

	_log(
		log_fn,
		f"Crawl complete: {result.enumerated} enumerated, {result.processed} processed, "
		+ f"{result.skipped} skipped, {result.failed} failed.",
	)
	return result
