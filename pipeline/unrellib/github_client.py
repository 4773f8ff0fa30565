import threading
import urllib.parse

import requests
from github import Auth
from github import Github
from github.GithubException import GithubException

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100


#============================================
class RemoteFetchError(RuntimeError):
	"""
	Raised when a GitHub API request cannot be completed.
	"""

	def __init__(self, context: str, message: str, status: int | None = None):
		self.context = context
		self.status = status
		super().__init__(f"{context} failed: {message}")


#============================================
class RateLimitError(RemoteFetchError):
	"""
	Raised when GitHub API rate limits block further requests.
	"""


#============================================
def link_has_next(headers: dict) -> bool:
	"""
	Check a response Link header for a rel="next" entry.
	"""
	link_value = ""
	for key, value in (headers or {}).items():
		if str(key).lower() == "link":
			link_value = str(value or "")
			break
	for part in link_value.split(","):
		if 'rel="next"' in part:
			return True
	return False


#============================================
def quote_ref(ref_name: str) -> str:
	"""
	Quote a branch or tag name for use inside a URL path.
	"""
	return urllib.parse.quote(ref_name, safe="/")


#============================================
class GitHubClient:
	"""
	Thin PyGithub wrapper for the unreleased-commit crawl.

	Every call returns REST-shaped dicts so the crawl code never touches
	PyGithub objects directly.
	"""

	def __init__(
		self,
		token: str,
		log_fn=None,
		page_size: int = DEFAULT_PAGE_SIZE,
		github_obj=None,
	):
		if (page_size < 1) or (page_size > MAX_PAGE_SIZE):
			raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}; got {page_size}")
		self.log_fn = log_fn
		self.page_size = page_size
		self._api_call_count = 0
		self._api_calls_by_context: dict[str, int] = {}
		self._counter_lock = threading.Lock()
		if github_obj is None:
			github_obj = self._build_github_client(token, page_size)
		self.client = github_obj

	#============================================
	def _build_github_client(self, token: str, page_size: int) -> Github:
		"""
		Create Github client with retry disabled.
		"""
		if not token:
			raise RuntimeError("A GitHub token is required to build the API client.")
		return Github(auth=Auth.Token(token), per_page=page_size, retry=None)

	#============================================
	def log(self, message: str) -> None:
		"""
		Emit one log line when logger is configured.
		"""
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def record_api_call(self, context: str) -> None:
		"""
		Track one outbound GitHub API call.
		"""
		with self._counter_lock:
			self._api_call_count += 1
			if context not in self._api_calls_by_context:
				self._api_calls_by_context[context] = 0
			self._api_calls_by_context[context] += 1

	#============================================
	def api_usage_snapshot(self) -> dict:
		"""
		Return API call counters for reporting.
		"""
		with self._counter_lock:
			return {
				"api_call_count": self._api_call_count,
				"api_calls_by_context": dict(self._api_calls_by_context),
			}

	#============================================
	def raise_from_github_error(self, error: Exception, context: str) -> None:
		"""
		Translate a PyGithub or transport error into RemoteFetchError.
		"""
		status = getattr(error, "status", None)
		if status in (403, 429):
			raise RateLimitError(
				context,
				"GitHub API rate limit exceeded or access forbidden "
				+ f"(status {status}). Check the GITHUB_TOKEN scope and quota.",
				status=status,
			) from error
		if status is not None:
			raise RemoteFetchError(context, f"HTTP {status}: {error}", status=status) from error
		raise RemoteFetchError(context, str(error) or error.__class__.__name__) from error

	#============================================
	def request_json(self, url: str, parameters: dict | None = None) -> tuple[dict, object]:
		"""
		Run one GET request and return (headers, payload).
		"""
		context = f"GET {url}"
		self.record_api_call(context)
		try:
			headers, payload = self.client.requester.requestJsonAndCheck(
				"GET",
				url,
				parameters=parameters,
			)
		except (GithubException, requests.exceptions.RequestException) as error:
			self.raise_from_github_error(error, context)
		return headers or {}, payload

	#============================================
	def get_org_repos_page(self, org: str, page: int) -> tuple[list[dict], bool]:
		"""
		Fetch one page of public organization repositories.
		"""
		headers, payload = self.request_json(
			f"/orgs/{org}/repos",
			{"type": "public", "per_page": self.page_size, "page": page},
		)
		if not isinstance(payload, list):
			raise RemoteFetchError(
				f"GET /orgs/{org}/repos",
				f"expected a list payload, got {type(payload).__name__}",
			)
		return payload, link_has_next(headers)

	#============================================
	def get_latest_release(self, org: str, repo: str) -> dict | None:
		"""
		Fetch the latest published release, or None when the repo has none.
		"""
		try:
			_, payload = self.request_json(f"/repos/{org}/{repo}/releases/latest")
		except RemoteFetchError as error:
			if error.status == 404:
				return None
			raise
		if not isinstance(payload, dict):
			return None
		return payload

	#============================================
	def get_repo(self, org: str, repo: str) -> dict:
		"""
		Fetch repository detail.
		"""
		_, payload = self.request_json(f"/repos/{org}/{repo}")
		if not isinstance(payload, dict):
			raise RemoteFetchError(
				f"GET /repos/{org}/{repo}",
				f"expected an object payload, got {type(payload).__name__}",
			)
		return payload

	#============================================
	def get_compare_page(
		self,
		org: str,
		repo: str,
		base: str,
		head: str,
		page: int,
	) -> tuple[list[dict], bool]:
		"""
		Fetch one page of the base...head commit comparison.
		"""
		url = f"/repos/{org}/{repo}/compare/{quote_ref(base)}...{quote_ref(head)}"
		headers, payload = self.request_json(
			url,
			{"per_page": self.page_size, "page": page},
		)
		if not isinstance(payload, dict):
			raise RemoteFetchError(
				f"GET {url}",
				f"expected an object payload, got {type(payload).__name__}",
			)
		commits = payload.get("commits") or []
		return list(commits), link_has_next(headers)
