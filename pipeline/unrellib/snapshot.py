"""Typed records for one repository's unreleased-commit state.

Snapshots are built by normalize() during a crawl and read back by the
report generator through RepositorySnapshot.from_dict(), which rejects any
payload that does not match the persisted schema.
"""

# Standard Library
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone

UNKNOWN_AUTHOR = "unknown"


#============================================
class SnapshotSchemaError(RuntimeError):
	"""
	Raised when a persisted snapshot does not match the expected schema.
	"""


#============================================
@dataclass(frozen=True)
class RepositoryRef:
	owner: str
	name: str
	html_url: str = ""


#============================================
@dataclass(frozen=True)
class ReleaseRef:
	tag_name: str
	published_at: datetime | None


#============================================
@dataclass(frozen=True)
class RawCommit:
	sha: str
	author: str
	message: str
	authored_at: datetime | None
	html_url: str


#============================================
@dataclass(frozen=True)
class CommitRecord:
	sha: str
	author: str
	message: str
	timestamp: datetime | None
	url: str

	#============================================
	def to_dict(self) -> dict:
		return {
			"sha": self.sha,
			"author": self.author,
			"message": self.message,
			"timestamp": format_timestamp(self.timestamp),
			"url": self.url,
		}

	#============================================
	@classmethod
	def from_dict(cls, data, where: str = "commit") -> "CommitRecord":
		if not isinstance(data, dict):
			raise SnapshotSchemaError(f"{where}: expected an object, got {type(data).__name__}")
		return cls(
			sha=require_str(data, "sha", where),
			author=require_str(data, "author", where),
			message=require_str(data, "message", where),
			timestamp=require_timestamp(data, "timestamp", where),
			url=require_str(data, "url", where),
		)


#============================================
@dataclass(frozen=True)
class RepositorySnapshot:
	owner: str
	name: str
	default_branch: str
	latest_release_tag: str
	latest_release_time: datetime | None
	unreleased_commits: tuple[CommitRecord, ...]
	repository_url: str

	#============================================
	def to_dict(self) -> dict:
		"""
		Serialize to the persisted JSON shape with a fixed key order.
		"""
		return {
			"owner": self.owner,
			"name": self.name,
			"default_branch": self.default_branch,
			"latest_release_tag": self.latest_release_tag,
			"latest_release_time": format_timestamp(self.latest_release_time),
			"unreleased_commits": [commit.to_dict() for commit in self.unreleased_commits],
			"repository_url": self.repository_url,
		}

	#============================================
	@classmethod
	def from_dict(cls, data, where: str = "snapshot") -> "RepositorySnapshot":
		"""
		Build a snapshot from decoded JSON, failing on any schema mismatch.
		"""
		if not isinstance(data, dict):
			raise SnapshotSchemaError(f"{where}: expected an object, got {type(data).__name__}")
		commits_value = data.get("unreleased_commits")
		if "unreleased_commits" not in data:
			raise SnapshotSchemaError(f"{where}: missing field 'unreleased_commits'")
		# null is how an empty commit list was written by older crawls
		if commits_value is None:
			commits_value = []
		if not isinstance(commits_value, list):
			raise SnapshotSchemaError(
				f"{where}: field 'unreleased_commits' must be a list, "
				+ f"got {type(commits_value).__name__}"
			)
		commits = tuple(
			CommitRecord.from_dict(item, f"{where}: unreleased_commits[{index}]")
			for index, item in enumerate(commits_value)
		)
		return cls(
			owner=require_str(data, "owner", where),
			name=require_str(data, "name", where),
			default_branch=require_str(data, "default_branch", where),
			latest_release_tag=require_str(data, "latest_release_tag", where),
			latest_release_time=require_timestamp(data, "latest_release_time", where),
			unreleased_commits=commits,
			repository_url=require_str(data, "repository_url", where),
		)


#============================================
def parse_timestamp(value: str) -> datetime:
	"""
	Parse an ISO-8601 timestamp into a timezone-aware UTC datetime.
	"""
	parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed.astimezone(timezone.utc)


#============================================
def parse_optional_timestamp(value) -> datetime | None:
	"""
	Parse a remote timestamp field, returning None when absent or blank.
	"""
	if value is None:
		return None
	text = str(value).strip()
	if not text:
		return None
	return parse_timestamp(text)


#============================================
def format_timestamp(value: datetime | None) -> str | None:
	"""
	Format a datetime as ISO-8601 UTC text, or None when unknown.
	"""
	if value is None:
		return None
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc).isoformat()


#============================================
def require_str(data: dict, key: str, where: str) -> str:
	if key not in data:
		raise SnapshotSchemaError(f"{where}: missing field '{key}'")
	value = data[key]
	if not isinstance(value, str):
		raise SnapshotSchemaError(
			f"{where}: field '{key}' must be a string, got {type(value).__name__}"
		)
	return value


#============================================
def require_timestamp(data: dict, key: str, where: str) -> datetime | None:
	if key not in data:
		raise SnapshotSchemaError(f"{where}: missing field '{key}'")
	value = data[key]
	if value is None:
		return None
	if not isinstance(value, str):
		raise SnapshotSchemaError(
			f"{where}: field '{key}' must be an ISO-8601 string, got {type(value).__name__}"
		)
	try:
		return parse_timestamp(value)
	except ValueError as error:
		raise SnapshotSchemaError(f"{where}: field '{key}' is not ISO-8601: {value!r}") from error


#============================================
def payload_mapping(value, context: str) -> dict:
	"""
	Return a nested payload object, treating null as empty.

	Raises ValueError when the remote sent something other than an object.
	"""
	if value is None:
		return {}
	if not isinstance(value, dict):
		raise ValueError(f"{context}: expected an object, got {type(value).__name__}")
	return value


#============================================
def resolve_commit_author(commit: dict) -> str:
	"""
	Pick the display author for one compare-API commit payload.

	The linked GitHub login wins, then the raw git author name, then
	the literal "unknown".
	"""
	linked_author = payload_mapping(commit.get("author"), "commit author")
	login = str(linked_author.get("login") or "").strip()
	if login:
		return login
	commit_data = payload_mapping(commit.get("commit"), "commit data")
	raw_author = payload_mapping(commit_data.get("author"), "commit data author")
	name = str(raw_author.get("name") or "").strip()
	if name:
		return name
	return UNKNOWN_AUTHOR


#============================================
def raw_commit_from_payload(commit: dict) -> RawCommit:
	"""
	Convert one compare-API commit payload to a RawCommit.
	"""
	if not isinstance(commit, dict):
		raise ValueError(f"compare commit: expected an object, got {type(commit).__name__}")
	commit_data = payload_mapping(commit.get("commit"), "commit data")
	raw_author = payload_mapping(commit_data.get("author"), "commit data author")
	return RawCommit(
		sha=str(commit.get("sha") or ""),
		author=resolve_commit_author(commit),
		message=str(commit_data.get("message") or ""),
		authored_at=parse_optional_timestamp(raw_author.get("date")),
		html_url=str(commit.get("html_url") or ""),
	)


#============================================
def normalize(
	repository_ref: RepositoryRef,
	default_branch: str,
	release: ReleaseRef,
	raw_commits: list[RawCommit],
	repository_url: str,
) -> RepositorySnapshot:
	"""
	Build the persisted snapshot from crawl results.

	raw_commits arrive oldest-first from the compare API; the snapshot
	stores them newest-first so index 0 is the most recent commit.
	"""
	records = [
		CommitRecord(
			sha=raw.sha,
			author=raw.author,
			message=raw.message,
			timestamp=raw.authored_at,
			url=raw.html_url,
		)
		for raw in reversed(raw_commits)
	]
	return RepositorySnapshot(
		owner=repository_ref.owner,
		name=repository_ref.name,
		default_branch=default_branch,
		latest_release_tag=release.tag_name,
		latest_release_time=release.published_at,
		unreleased_commits=tuple(records),
		repository_url=repository_url,
	)
